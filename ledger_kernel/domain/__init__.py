"""Pure domain core: taxonomy, journal values, clock."""
