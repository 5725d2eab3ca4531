"""Field operations backend: visit ingestion and lead provisioning."""
