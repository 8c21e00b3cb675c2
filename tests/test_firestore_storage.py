"""Tests for Firestore storage helpers."""

from __future__ import annotations

from datetime import date, datetime, timezone
from unittest.mock import MagicMock, patch

from niblet_assistant.storage import firestore as storage


class TestMeals:
    """Tests for meal documents."""

    @patch("niblet_assistant.storage.firestore.get_firestore_client")
    def test_create_meal(self, mock_get_client, mock_firestore_client):
        """Should add a meal stamped with the owner and timestamps."""
        mock_get_client.return_value = mock_firestore_client
        doc_ref = MagicMock(id="meal_1")
        mock_firestore_client.collection.return_value.add.return_value = (None, doc_ref)

        meal = storage.create_meal("user-123", {"name": "Toast", "calories": 150})

        mock_firestore_client.collection.assert_called_with("meals")
        stored = mock_firestore_client.collection.return_value.add.call_args.args[0]
        assert stored["userId"] == "user-123"
        assert stored["name"] == "Toast"
        assert isinstance(stored["date"], datetime)
        assert meal["id"] == "meal_1"

    @patch("niblet_assistant.storage.firestore.get_firestore_client")
    def test_get_meal_missing(self, mock_get_client, mock_firestore_client):
        """Should return None for a missing document."""
        mock_get_client.return_value = mock_firestore_client
        doc = MagicMock(exists=False)
        mock_firestore_client.collection.return_value.document.return_value.get.return_value = doc

        assert storage.get_meal("nope") is None

    @patch("niblet_assistant.storage.firestore.get_firestore_client")
    def test_get_meal_includes_id(self, mock_get_client, mock_firestore_client):
        """Should merge the document id into the returned data."""
        mock_get_client.return_value = mock_firestore_client
        doc = MagicMock(exists=True, id="meal_1")
        doc.to_dict.return_value = {"userId": "user-123"}
        mock_firestore_client.collection.return_value.document.return_value.get.return_value = doc

        assert storage.get_meal("meal_1") == {"userId": "user-123", "id": "meal_1"}


class TestWeightLogs:
    """Tests for weight log documents."""

    @patch("niblet_assistant.storage.firestore.get_firestore_client")
    def test_log_weight_updates_profile(self, mock_get_client, mock_firestore_client):
        """Should add the entry and mirror the weight onto the profile."""
        mock_get_client.return_value = mock_firestore_client
        collection = mock_firestore_client.collection.return_value
        collection.add.return_value = (None, MagicMock(id="w_1"))

        entry = storage.log_weight("user-123", 180.0, date(2024, 1, 2))

        stored = collection.add.call_args.args[0]
        assert stored["date"] == datetime(2024, 1, 2, tzinfo=timezone.utc)
        profile_update = collection.document.return_value.set.call_args
        assert profile_update.args[0]["currentWeight"] == 180.0
        assert profile_update.kwargs == {"merge": True}
        assert entry["id"] == "w_1"

    @patch("niblet_assistant.storage.firestore.get_firestore_client")
    def test_update_weight_log_converts_date(self, mock_get_client, mock_firestore_client):
        """Should store dates as timezone-aware datetimes."""
        mock_get_client.return_value = mock_firestore_client
        document = mock_firestore_client.collection.return_value.document.return_value

        storage.update_weight_log("w_1", {"date": date(2024, 2, 10)})

        written = document.update.call_args.args[0]
        assert written["date"] == datetime(2024, 2, 10, tzinfo=timezone.utc)
        assert "updatedAt" in written


class TestFirestoreClient:
    """Tests for Firebase initialization."""

    def setup_method(self):
        storage._app = None

    def teardown_method(self):
        storage._app = None

    @patch("niblet_assistant.storage.firestore.firestore")
    @patch("niblet_assistant.storage.firestore.firebase_admin")
    def test_initializes_with_default_credentials(
        self, mock_firebase_admin, mock_firestore, mock_settings, mock_firestore_client
    ):
        """Should initialize the default app once and hand back its Firestore client."""
        mock_firebase_admin._apps = {}
        mock_firestore.client.return_value = mock_firestore_client

        assert storage.get_firestore_client(mock_settings) is mock_firestore_client
        assert storage.get_firestore_client(mock_settings) is mock_firestore_client

        mock_firebase_admin.initialize_app.assert_called_once_with()

    @patch("niblet_assistant.storage.firestore.firestore")
    @patch("niblet_assistant.storage.firestore.credentials")
    @patch("niblet_assistant.storage.firestore.firebase_admin")
    def test_initializes_with_inline_service_account(
        self, mock_firebase_admin, mock_credentials, mock_firestore, mock_settings
    ):
        """Should parse an inline JSON key into a certificate."""
        mock_firebase_admin._apps = {}
        settings = mock_settings.model_copy(
            update={"firebase_service_account_key": '{"project_id": "niblet"}'}
        )

        storage.get_firestore_client(settings)

        mock_credentials.Certificate.assert_called_once_with({"project_id": "niblet"})
        mock_firebase_admin.initialize_app.assert_called_once_with(
            mock_credentials.Certificate.return_value
        )
