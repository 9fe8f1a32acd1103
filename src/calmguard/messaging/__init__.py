"""Host-to-host messaging: message models and the in-process transport."""
