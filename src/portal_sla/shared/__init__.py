"""
Shared Kernel Module
====================

Shared infrastructure used by both bounded contexts (SLA monitoring and
notifications): logging, middleware and metrics export.

DO NOT add deadline or delivery business logic to the shared kernel.
"""
