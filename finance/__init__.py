"""Core solar proposal math: credit allocation, amortization, cash flow, returns."""
