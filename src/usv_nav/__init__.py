"""
usv-nav - path planning for autonomous surface vessels

- mapping: occupancy grid over the operating water area
- navigation: A* global planner, dynamic-window local planner with
  right-of-way rules, tick-driven navigator
- simulation: virtual water area, range sensor and vessel for testing
  without hardware
"""

__version__ = "0.1.0"
