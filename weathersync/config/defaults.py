"""Seed locations used when a config file lists none."""

from weathersync.config.schema import LocationSeed

DEFAULT_LOCATIONS: list[LocationSeed] = [
    LocationSeed(name="Victoria Falls", country="Zimbabwe", latitude=-17.9243, longitude=25.8572),
    LocationSeed(name="Harare", country="Zimbabwe", latitude=-17.8292, longitude=31.0522),
    LocationSeed(name="London", country="United Kingdom", latitude=51.5085, longitude=-0.1257),
    LocationSeed(name="New York", country="United States", latitude=40.7143, longitude=-74.006),
    LocationSeed(name="Tokyo", country="Japan", latitude=35.6895, longitude=139.6917),
]
