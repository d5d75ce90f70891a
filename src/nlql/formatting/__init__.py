from .formatter import OutputFormat, ResultFormatter, format_cell, outcome_payload, render_grid

__all__ = ["OutputFormat", "ResultFormatter", "format_cell", "outcome_payload", "render_grid"]
