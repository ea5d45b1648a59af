"""
database — Database Module

Contains the SQLAlchemy ORM model and store for persisted
conversation summaries (SQLite by default).
Part of Vesper — Local-First Personal Assistant.
"""
