"""
Upscaler package for the `/upscale` issue comment automation.

Modules:
- config: environment-driven configuration
- inputs: scale and image URL extraction from issue text
- issues: issue-tracker REST client and comment templates
- fetch: image download into the scratch directory
- render: resizing, sharpening and re-encoding
- publisher: committing results to the artifact branch
- core: pipeline orchestration and failure reporting
- errors: exception hierarchy
"""
