"""
Routers module - one router per clinic function.

- meetings: /functions/create-meet (+ reconciliation listing)
- google_oauth: /functions/oauth-google
- users: /functions/delete-user
"""
