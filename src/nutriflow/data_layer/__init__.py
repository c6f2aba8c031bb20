"""Data layer: models, durable ingredient store and configuration."""
