"""
AI orchestration: provider gateway, prompt templates, response extraction
and the two assistants (interview auto-fill, free-text mapping).
"""
