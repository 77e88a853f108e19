# debtsentry/__init__.py
"""DebtSentry: aged debt and trade receivable analytics."""
