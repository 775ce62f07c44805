"""
FastAPI REST Endpoints
======================

REST API endpoints for HTTP access to the rendering pipeline.

Endpoints:
- POST /api/v1/render: Render an HTML string or a URL to PNG
- GET /api/v1/health: Health check endpoint
"""
