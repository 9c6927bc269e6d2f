"""OpEx Planner - operating expense forecasting and budgeting."""

__version__ = "0.1.0"
