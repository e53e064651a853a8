"""JSON Schemas for deliverygate evidence artifacts (package data)."""
