"""Build stages.

This module handles:
- The build context and cross-build cache
- Runtime install
- External source overlay
- Vendored gems, Bundler install and binaries
- ROM index generation
"""

from slugpack.builds.cache import BuildCache, CacheError
from slugpack.builds.context import BuildContext

__all__ = ["BuildCache", "BuildContext", "CacheError"]
