from .aggregator import MessageAggregator, aggregate_messages, to_response

__all__ = ["MessageAggregator", "aggregate_messages", "to_response"]
