"""
Services module - the business logic behind each clinic function.

- meeting_provisioner: conference links for appointments
- provision_ledger: per-appointment attempt bookkeeping
- account_service: Google linking and user deletion
"""
