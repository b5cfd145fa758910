"""Configuration and the risk-profile layer built on the domain core."""
