"""Seed script — creates the demo user and a welcome document via the REST API.

Usage:
    python scripts/seed.py              # uses http://localhost:8000
    python scripts/seed.py http://host  # custom base URL
"""

import sys

import httpx

BASE_URL = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"

USERS = [
    {"email": "demo@example.com", "name": "Demo User", "password": "demo123"},
    {"email": "bob@example.com", "name": "Bob Jones", "password": "password123"},
]

WELCOME_TITLE = "Welcome to Collaborative Editor"

WELCOME_CONTENT = """
<h1>Welcome to the collaborative editor!</h1>
<p>This is a <strong>collaborative</strong> rich text document.</p>
<h2>Features</h2>
<ul>
  <li><strong>Live editing</strong> - Everyone in the document sees changes as they are saved</li>
  <li><strong>User presence</strong> - See who else is in the document</li>
  <li><strong>Live cursors</strong> - See where other users are typing</li>
  <li><strong>Version history</strong> - Track changes and restore earlier versions</li>
  <li><strong>Export options</strong> - HTML, Markdown, Plain Text</li>
</ul>
<p><em>Start editing this document to see collaboration in action!</em></p>
""".strip()


def register(client: httpx.Client, user: dict) -> None:
    resp = client.post(f"{BASE_URL}/api/auth/register", json=user)
    if resp.status_code == 201:
        print(f"  Registered {user['email']}")
    elif resp.status_code == 409:
        print(f"  {user['email']} already exists, skipping")
    else:
        resp.raise_for_status()


def login(client: httpx.Client, email: str, password: str) -> str:
    resp = client.post(
        f"{BASE_URL}/api/auth/login",
        json={"email": email, "password": password},
    )
    resp.raise_for_status()
    return resp.json()["access_token"]


def create_welcome_document(client: httpx.Client, token: str, collaborator: str) -> None:
    headers = {"Authorization": f"Bearer {token}"}
    resp = client.get(f"{BASE_URL}/api/documents", headers=headers)
    resp.raise_for_status()
    if any(doc["title"] == WELCOME_TITLE for doc in resp.json()):
        print(f"  '{WELCOME_TITLE}' already exists, skipping")
        return

    resp = client.post(
        f"{BASE_URL}/api/documents",
        json={"title": WELCOME_TITLE, "content": WELCOME_CONTENT},
        headers=headers,
    )
    resp.raise_for_status()
    doc_id = resp.json()["id"]
    print(f"  Created document '{WELCOME_TITLE}' ({doc_id})")

    resp = client.post(
        f"{BASE_URL}/api/documents/{doc_id}/collaborators",
        json={"email": collaborator},
        headers=headers,
    )
    resp.raise_for_status()
    print(f"  Shared with {collaborator}")


def main() -> None:
    print(f"Seeding against {BASE_URL}\n")

    with httpx.Client(timeout=10) as client:
        print("Users:")
        for user in USERS:
            register(client, user)

        owner, collaborator = USERS
        token = login(client, owner["email"], owner["password"])

        print("\nDocuments:")
        create_welcome_document(client, token, collaborator["email"])

    print("\nDone!")
    print(f"Demo user: {owner['email']} / {owner['password']}")


if __name__ == "__main__":
    main()
