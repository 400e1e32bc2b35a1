"""
Temporal activity registrations and workflow proxies.

Workflows import only the proxies module and the worker imports only the
activities module, so store libraries never get imported inside the
workflow sandbox.
"""
