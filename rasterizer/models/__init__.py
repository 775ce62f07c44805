"""
Data Models
===========

Pydantic data models for pipeline results, draw options and API schemas.

Models:
- schemas: ErrorRecord, RenderedImage, RenderResult, DrawOptions and the
  REST request/response schemas
"""
