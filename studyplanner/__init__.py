"""
studyplanner - scheduling core for a student task/calendar planner.
"""

__version__ = "0.1.0"
