"""Durable Weather Site.

Publishes an "Is it <weather>ing in <place>?" page, but only when the observed
weather differs from what was last published. Every side effect runs as a
durable step so a retried run resumes instead of repeating work.
"""

__version__ = "0.1.0"

from durable_weather_site.config import WeatherSiteSettings
from durable_weather_site.workflow import WorkflowResult, run_weather_site

__all__ = ["__version__", "WeatherSiteSettings", "WorkflowResult", "run_weather_site"]
