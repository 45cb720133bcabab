"""Domain layer - pure models and rules for Daily Alchemy."""
