"""Domain models for members, vitals, insights and alerts."""
