"""
ExteriorAI API: voice/text driven AI redesign of outdoor spaces
"""

__version__ = "1.0.0"
