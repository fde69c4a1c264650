"""HTTP gateway access: configuration, endpoint registry and block transport."""
