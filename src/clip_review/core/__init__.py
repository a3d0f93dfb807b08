"""Core domain: persistence, lifecycle state machines, and services."""
