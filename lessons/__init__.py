"""Lessons service package.

This package exposes the models, repositories, services and FastAPI
application that manage lessons, lesson plans and activities along with
the links between them. Individual modules contain the concrete
implementations and documentation.
"""
