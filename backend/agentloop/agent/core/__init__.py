"""
Agent core: LLM client adapters and the tool-calling runtime
"""
