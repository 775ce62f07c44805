"""
Core Business Logic
==================

The rendering orchestration pipeline.

Modules:
- parameters: Normalization of optional (canvas, options, callback) arguments
- interfaces: Collaborator protocols consumed by the pipeline
- errors: Exception hierarchy
- pipeline: Input resolution, stage sequencing and result composition
"""
