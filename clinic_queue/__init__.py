"""Clinic visit queue: moves patients through the visit stage pipeline."""
