"""Blob storage for generated customer artifacts."""
