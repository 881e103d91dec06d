"""
Core modules for Cost Accrual.

This package contains the accrual engine, normalization of stored cost
data, and the fixed-cost management operations built on them.
"""
