"""LangGraph pipeline: introspect, translate, validate, execute, format.

Import the runner from ``nlql.pipeline.runner``; this package module stays
empty so that ``nlql.pipeline.outcome`` can be imported by the formatter
without pulling in the graph.
"""
