"""Activity pipeline core: pattern table, normalizer, classifier, buffer, clocks."""
