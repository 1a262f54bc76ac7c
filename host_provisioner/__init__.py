"""Host provisioner for Node Exporter and Cronicle (Python-first, fail-fast).

Core design goals:
- Idempotent stages driven by live host state
- Detected host facts computed once and passed explicitly
- Atomic replacement of binaries, units and config files
- Explicit primary/secondary cluster roles
- Centralized logging
"""

__all__ = []
