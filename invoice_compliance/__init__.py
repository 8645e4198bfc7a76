# ==== INVOICE COMPLIANCE PACKAGE ==== #

"""
Monthly invoice compliance core.

Deadline computation, invoice lifecycle transitions and compliance
evaluation for per-company monthly invoice submission tracking.
"""

__version__ = "0.1.0"
