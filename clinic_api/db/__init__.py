"""Database layer: declarative base, session factory, enums and models."""
