"""Control implementation suggestions.

Proposes implementation metadata and a short implementation description
for compliance controls:
- strategies: template, keyword, similarity and default strategies
- generation: provider fallback chain, prompts and text normalization
- batch: sequential batch runner
"""
__version__ = "0.1.0"
