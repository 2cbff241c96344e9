"""Health Guardian: family health monitoring backend.

Simulates live vitals for tracked family members, raises alerts, and
retrieves AI-generated health insights for caregivers.
"""
