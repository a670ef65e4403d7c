"""
Runtime models and the tool-calling turn loop
"""
