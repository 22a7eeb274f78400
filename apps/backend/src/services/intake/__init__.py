"""Server-side orchestration for turning photos and AI output into a draft listing.

Import from the submodules directly: `operation`, `batch`, `draft`,
`extraction` and `session`.
"""
