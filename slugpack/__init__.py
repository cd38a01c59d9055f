"""slugpack - build pipeline for turning an app source tree into a slug.

This package drives the runtime install, dependency vendoring, caching and
artifact generation steps that turn a pushed application directory into a
deployable runtime image.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
