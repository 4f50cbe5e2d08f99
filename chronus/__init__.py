"""ChronusCRM and ChronusDev backends."""
