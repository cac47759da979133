"""Request routing and header rewriting pipeline of the forwarding proxy."""
