"""Orders bounded context: order lifecycle coupled to stock control."""
