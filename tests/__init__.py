"""
Test Suite
==========

Test suite matching the rasterizer/ package structure.

Test Categories:
- unit: Unit tests for individual components
- integration: REST API tests against a pipeline with mocked collaborators
"""
