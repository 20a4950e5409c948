# Stock Aggregator HTTP application
