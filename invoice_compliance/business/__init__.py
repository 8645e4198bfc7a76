# ==== BUSINESS LOGIC PACKAGE ==== #

"""
Business logic package for domain rules and policies.

This package contains the pure business rules of the compliance core:
working-day arithmetic, reference months, deadline strategies and the
invoice status machine. Nothing in here performs I/O.
"""
