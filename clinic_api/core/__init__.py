"""Core configuration, dependencies and cross-cutting helpers."""
