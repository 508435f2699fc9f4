"""
Service layer

Pure computation, no state transitions:
- validation_service: roster input normalization and checks
"""
