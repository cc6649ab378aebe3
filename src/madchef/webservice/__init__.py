"""MadChef webservice."""
