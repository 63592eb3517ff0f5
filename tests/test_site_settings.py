"""
Tests for contact settings.
"""

from fastapi import status


class TestContactSettings:

    def test_not_configured_yet(self, client):
        response = client.get("/api/settings/contact")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_update_then_read(self, client):
        updated = client.put("/api/settings/contact", json={
            "phoneNumber": "+62 812 0000 1111",
            "email": "admin@example.com",
        })

        assert updated.status_code == status.HTTP_200_OK
        data = client.get("/api/settings/contact").json()["data"]
        assert data["phone"] == "+6281200001111"
        assert data["email"] == "admin@example.com"

    def test_update_is_an_upsert(self, client):
        client.put("/api/settings/contact", json={"phone_number": "+628111111111"})
        client.put("/api/settings/contact", json={"phone_number": "+628222222222"})

        data = client.get("/api/settings/contact").json()["data"]
        assert data["phone"] == "+628222222222"
        assert data["email"] is None

    def test_invalid_phone_rejected(self, client):
        response = client.put("/api/settings/contact", json={"phoneNumber": "0812-abc"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert client.get("/api/settings/contact").status_code == status.HTTP_404_NOT_FOUND
