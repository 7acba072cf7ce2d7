"""Skill Intelligence MCP Server.

Skill-gap analysis through a remote analysis service, plus coding challenges
that validate self-assessed skill levels and keep confidence estimates honest.
"""

__version__ = "0.1.0"
