"""Domain services: clearance workflow, messaging, identity, directory."""
