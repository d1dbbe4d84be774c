"""
Database module - engine, session factory, declarative base.
"""
