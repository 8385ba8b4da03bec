"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP/WebSocket layer.

Modules:
    - matching: Candidate discovery, distance refinement and job dispatch
    - job_management: Job acceptance, inbox upkeep and lifecycle operations
"""
