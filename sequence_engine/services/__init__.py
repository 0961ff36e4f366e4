"""Knowledge-base asset services: keywords, selection, insertion, summaries."""
