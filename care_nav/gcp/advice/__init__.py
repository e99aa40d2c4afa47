"""LLM tier advice ("Navi") for the Guided Care Plan.

Advice is advisory only: it is validated against the canonical tiers, filtered for
forbidden vocabulary, and reconciled with the deterministic tier by the adjudicator.
"""
