"""HTML rendering for the published site page."""

from __future__ import annotations

SITE_KEY = "index.html"
SITE_PATH = "/" + SITE_KEY
CONTENT_TYPE = "text/html"

POSITIVE_ANSWER = "YES!!!"
NEGATIVE_ANSWER = "NO."
POSITIVE_COLOR = "red"
NEGATIVE_COLOR = "green"

_TEMPLATE = """<html>
  <head>
    <link rel="stylesheet" type="text/css" href="styles.css">
    <title>Is it {weather}ing in {location}?</title>
  </head>
  <body style="background-color: {color};">
    <div class="supercontainer">
      <div class="container">
        <div class="title">
          <h1>{answer}</h1>
        </div>
        <div class="footer">
          <p>
            This site uses a weather API, so if you're wondering why it's not matching what you're seeing check <a href="{reference_url}">here</a>
          </p>
          <p>
            Made by <a href="https://www.danielleheberling.xyz/">Danielle Heberling</a> - Inspired by <a href="http://isitsnowinginpdx.com/">Is it snowing in PDX</a>
          </p>
          <p>
            <a href="https://github.com/deeheber/durable-function-weather-site">Code contributions welcome</a>
          </p>
        </div>
      </div>
    </div>
  </body>
</html>"""


def gerund_stem(weather_type: str) -> str:
    """Stem that takes an ``ing`` suffix: "haze" -> "haz", "clouds" -> "cloud"."""

    if weather_type.lower().endswith(("e", "s")):
        return weather_type[:-1]
    return weather_type


def render_site(
    *, status: str, weather_type: str, location_name: str, reference_url: str
) -> str:
    negative = status.startswith("no")
    return _TEMPLATE.format(
        weather=gerund_stem(weather_type),
        location=location_name,
        color=NEGATIVE_COLOR if negative else POSITIVE_COLOR,
        answer=NEGATIVE_ANSWER if negative else POSITIVE_ANSWER,
        reference_url=reference_url,
    )
