"""
Schemas module - records read by the eligibility engine and the API contract.
"""
