"""
Schemas module - request/response bodies of the clinic functions.
"""
