"""Core services: plan graph, configuration, logging, templates, detection math."""
