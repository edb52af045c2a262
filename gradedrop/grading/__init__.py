"""Rubric model, deadline policy and the grading engine."""
