"""
Classification oracle: LLM client, prompts and response parsing.
"""
