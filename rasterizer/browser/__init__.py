"""
Browser Collaborators
=====================

Default collaborator implementations used by the pipeline.

Components:
- document: HTMLDocument model and markup parser
- fetcher: aiohttp resource fetcher with cache modes and cache buckets
- loader: Remote document loading
- pool: Playwright browser pool
- scripting: Script execution and form state persistence
- inliner: Reference inlining into data URIs and inline blocks
- renderer: Playwright screenshot rendering
- painter: Pillow canvas painting
"""
