"""
Leadership applications.

PENDING -> APPROVED | REJECTED. Both outcomes are terminal. Approval promotes the
applicant to LEADER in the same transaction as the status change.
"""
