"""
RelaySync: price-driven scheduling and synchronization for relay devices.

The coordinator (FastAPI application in ``relaysync.main``) turns a price
curve and per-device policy into a 96-slot ON/OFF timetable and keeps a
fleet of autonomous device agents (``relaysync.agent``) in agreement with it.
"""

__version__ = "1.0.0"
