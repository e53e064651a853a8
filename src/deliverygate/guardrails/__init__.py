"""Standalone guardrails built on the policy document."""
