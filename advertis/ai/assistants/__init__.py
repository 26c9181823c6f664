"""
AI assistants.

    - interview_filler: completes empty interview variables from context
    - variable_mapper: maps free-form text onto interview variables
"""

from advertis.ai.assistants.interview_filler import InterviewFiller
from advertis.ai.assistants.variable_mapper import VariableMapper

__all__ = ["InterviewFiller", "VariableMapper"]
