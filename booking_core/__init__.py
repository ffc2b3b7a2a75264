"""
Appointment scheduling and availability core of the booking site.

Layers:
- domain: entities, interval arithmetic and repository interfaces
- repositories: SQLAlchemy implementations of those interfaces
- services: schedule calendar, availability engine, appointment lifecycle
- controllers: Flask blueprints exposing the services over HTTP
"""

__version__ = "0.1.0"
