"""
DustAlert — Fine Dust Alerting Package.

Components:
    - ingestion: sensor directory, sensor.community connector, predictor, aggregator
    - rules: threshold ranker
    - cooldown: per-pollutant incident/notification cooldown tracker
    - alerts: alert composer (Jinja2 templates) and notification transports
"""

__version__ = "1.0.0"
