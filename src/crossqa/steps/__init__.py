"""Behave step definitions for the sample web and mobile pages.

Importing a module registers its steps with behave's step registry; see
``features/steps/crossqa_steps.py``.
"""
