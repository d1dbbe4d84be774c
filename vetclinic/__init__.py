"""
Veterinary clinic server-side functions.
"""
