"""Window buffer, analytics and the ingestion controller that drives them."""
