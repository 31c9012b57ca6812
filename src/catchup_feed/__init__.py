"""catchup-feed - article and source retrieval for the feed aggregator."""

__version__ = "0.4.0"
