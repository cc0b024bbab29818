"""
StepFour - Personal Resentment Inventory

A small local journal for working through a fourth-step inventory:
who or what I resent, what happened, how it affects me, and my part.

Everything stays on this machine.
"""

__version__ = "0.1.0"
