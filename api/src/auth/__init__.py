"""Identity collaborator: bearer tokens, roles and the user directory."""
