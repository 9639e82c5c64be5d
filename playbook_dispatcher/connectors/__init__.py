"""Clients for the cloud connector, inventory and sources services, and their HTTP transport."""