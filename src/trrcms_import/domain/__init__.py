"""Domain layer: import packages, staging, validation, duplicates and merges."""
