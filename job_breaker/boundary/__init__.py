"""
Boundary layer for external system integrations.

Handles all interactions with external systems (SQS, S3, the generator
process). Provides clients the core components are built on.
"""
