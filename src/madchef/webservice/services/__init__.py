"""Query shaping and serialization services for the webservice."""
