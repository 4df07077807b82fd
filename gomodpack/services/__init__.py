"""
Service layer for gomodpack.

Services orchestrate the domain objects and infrastructure:
- PackagingService: resolve, archive and publish a module version
"""

from .packaging_service import PackagingService

__all__ = [
    'PackagingService',
]
