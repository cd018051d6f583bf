"""Routing — a static, ordered route table.

Routes are declared once when the gateway is built and matched in
declaration order; the first pattern that matches wins.
"""

from heron.routing.route import Route, RouteMatch
from heron.routing.router import Router, compile_pattern

__all__ = ["Route", "RouteMatch", "Router", "compile_pattern"]
