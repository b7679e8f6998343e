"""Configuration, logging, time and credential primitives."""
