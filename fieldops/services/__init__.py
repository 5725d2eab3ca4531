"""
Business services for the visit workflow.

Services own transaction boundaries; repositories only stage and flush.
"""
