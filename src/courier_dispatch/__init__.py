"""Multi-stop delivery planning service for courier dispatch."""
