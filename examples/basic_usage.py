"""
Identity Toolkit Auth - Basic Usage Example

This example demonstrates the basic usage of the sync and async clients.
"""

import asyncio
import logging

from idtoolkit_auth import (
    AuthClient,
    AsyncAuthClient,
    AuthConfig,
    AuthProviderKind,
    ClassifiedAuthError,
    ErrorReason,
    AuthError,
)


def sync_example():
    """Synchronous client example."""
    print("=== Sync Client Example ===\n")

    with AuthClient(AuthConfig(api_key="YOUR_API_KEY", debug=True)) as client:
        try:
            credential = client.sign_in_with_email_and_password(
                "user@example.com",
                "SecurePassword123!",
            )
            print(f"Signed in as: {credential.profile.email}")
        except ClassifiedAuthError as e:
            if e.reason is ErrorReason.WRONG_PASSWORD:
                print("Wrong password")
            elif e.reason is ErrorReason.UNKNOWN_EMAIL_ADDRESS:
                print("No account for that email")
            else:
                print(f"Sign-in refused: {e.reason.value}")
        except AuthError as e:
            print(f"Error (expected without real API key): {type(e).__name__}")


async def async_example():
    """Asynchronous client example."""
    print("\n=== Async Client Example ===\n")

    async with AsyncAuthClient(AuthConfig(api_key="YOUR_API_KEY", debug=True)) as client:
        try:
            anonymous = await client.sign_in_anonymously()
            print(f"Anonymous user: {anonymous.local_id}")

            # Upgrade the anonymous account with a Google sign-in
            linked = await client.link_with_oauth(
                anonymous, AuthProviderKind.GOOGLE, "GOOGLE_ACCESS_TOKEN"
            )
            print(f"Linked providers: {[p.provider_id for p in linked.profile.provider_user_info]}")

            providers = await client.get_linked_accounts("user@example.com")
            print(f"Providers for {providers.email}: {providers.all_providers}")
        except AuthError as e:
            print(f"Error (expected without real API key): {type(e).__name__}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    sync_example()
    asyncio.run(async_example())
