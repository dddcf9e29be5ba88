"""
Service Organization
====================
**container.py**
  ``ServiceContainer`` builds and owns the long-lived components: the
  database handler, plant repository, rate limiter, source adapters and
  photo store. One instance per application.

**sources/**
  Adapters for the third-party plant databases (Trefle, Perenual). Each
  holds its own ``requests.Session`` and normalizes results to
  ``PlantRecord``.
"""
