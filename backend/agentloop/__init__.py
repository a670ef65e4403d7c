"""
agentloop - a plan-driven tool-calling agent loop
"""

__version__ = "0.1.0"
