"""Real-time VBZ departures from the Swiss Open Journey Planner API."""

import logging

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
