"""Triage scoring and consultation-queue application.

This package contains the pure scoring/sequencing rules, the models and
services that persist them, and the API routes exposing them.
"""
