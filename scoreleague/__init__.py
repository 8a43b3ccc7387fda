"""ScoreLeague: prediction-league scoring, standings and bot predictions."""

__version__ = "0.1.0"
