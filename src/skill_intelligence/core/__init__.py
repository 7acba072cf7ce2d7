"""Core business logic: analysis client, anonymization, challenges and scoring.

This module is framework-agnostic. It has no dependency on MCP, FastMCP,
or any server framework, and no dependency on the local database.
"""
