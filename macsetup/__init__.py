"""mac-setup: declarative macOS provisioning.

Core design goals:
- Fixed, dependency-ordered module pipeline
- Idempotent modules (safe to re-run)
- Dry-run describes every action a real run would take
- Bounded-parallel repository cloning
- Centralized logging
"""

__all__ = []
