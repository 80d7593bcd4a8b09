"""
Better Do It - active/master task lists with ordered drag-and-drop and SMS reminders.
"""
__version__ = "0.1.0"
