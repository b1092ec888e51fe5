"""FMX preventive-maintenance program builder."""
