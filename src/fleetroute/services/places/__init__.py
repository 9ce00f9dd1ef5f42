"""Free-text place resolution: normalisation, local gazetteer and remote lookup."""
