"""Business logic for the authentication and account lifecycle.

Learn: Service layer separates business logic from HTTP routing.
API routes and the CLI call services, services call the stores.
Every collaborator (stores, hasher, signer, mailer, clock) arrives
through the constructor; warden.services.wiring builds the graph once.
"""
