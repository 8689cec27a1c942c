"""Closed vocabularies shared by models and request schemas."""

from typing import Literal

Role = Literal["student", "teacher", "admin"]
Level = Literal["beginner", "intermediate", "advanced"]
Difficulty = Literal["easy", "medium", "hard"]
MistakeType = Literal["pronunciation", "fluency", "accuracy"]
Severity = Literal["low", "medium", "high"]
