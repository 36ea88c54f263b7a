"""Expense reimbursement workflow service."""
