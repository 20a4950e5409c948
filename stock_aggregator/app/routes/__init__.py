# Stock Aggregator HTTP routes
