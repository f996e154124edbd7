"""
Portal Kernel - synchronization core of the bookkeeping portal.

Keeps four collections consistent as users register, upload and validate:
- User accounts (accountants and client companies)
- Accountant-owned client records, linked to accounts by email
- Uploaded documents with denormalized pending counters
- Tax obligations tracked to payment
"""

__version__ = "0.1.0"
