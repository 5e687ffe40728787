"""
Preflight API Package.

This package provides the FastAPI-based REST API that runs on top of the
startup bootstrap: health probes that report degraded mode, and access to
the bootstrapped database handle and browser executable.

Modules:
    config: Pydantic settings and the Environment snapshot
    dependencies: FastAPI dependencies for bootstrapped resources
    middleware: Correlation ID, request logging, degraded-mode header
    main: Application factory and lifespan

Usage:
    from api.main import create_application
    app = create_application(report)
"""

# Version
__version__ = "0.1.0"
