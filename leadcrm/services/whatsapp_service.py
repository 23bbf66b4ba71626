import logging
import re
from datetime import datetime
from typing import List, Optional

import requests
from sqlalchemy.orm import Session
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from leadcrm.core.config import settings
from leadcrm.core.errors import ConflictError, NotFoundError, ValidationError
from leadcrm.models.user import User
from leadcrm.models.whatsapp_connection import WhatsAppConnection
from leadcrm.schemas.whatsapp import WhatsAppCredentials

logger = logging.getLogger(__name__)

COUNTRY_CODE = "972"
TRANSIENT_ERRORS = (requests.exceptions.ConnectionError, requests.exceptions.Timeout)


def format_phone(phone: str) -> str:
    """Digits only, with the Israeli country code in front of local numbers."""
    digits = re.sub(r"\D", "", phone or "")
    if digits.startswith(COUNTRY_CODE):
        return digits
    return COUNTRY_CODE + digits.lstrip("0")


def _error_message(response) -> str:
    try:
        return response.json().get("error", {}).get("message") or response.text
    except ValueError:
        return response.text


class WhatsAppClient:
    """Thin wrapper over the Meta Cloud API for one set of credentials."""

    def __init__(self, access_token: str, phone_number_id: str):
        self.access_token = access_token
        self.phone_number_id = phone_number_id
        self.base_url = settings.WHATSAPP_GRAPH_URL

    @property
    def headers(self):
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    def validate(self):
        response = requests.get(
            f"{self.base_url}/{self.phone_number_id}",
            headers=self.headers,
            timeout=settings.WHATSAPP_TIMEOUT,
        )
        if response.ok:
            return True, None
        return False, _error_message(response)

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    def send_text(self, phone: str, body: str) -> str:
        payload = {
            "messaging_product": "whatsapp",
            "to": format_phone(phone),
            "type": "text",
            "text": {"body": body},
        }
        response = requests.post(
            f"{self.base_url}/{self.phone_number_id}/messages",
            json=payload,
            headers=self.headers,
            timeout=settings.WHATSAPP_TIMEOUT,
        )
        if not response.ok:
            raise RuntimeError(_error_message(response))
        return response.json()["messages"][0]["id"]


class WhatsAppService:
    def __init__(self, db: Session):
        self.db = db

    # ---------------------------------------------------------
    # CONNECTION
    # ---------------------------------------------------------
    def find_for_manager(self, manager_id: int, active_only: bool = True) -> Optional[WhatsAppConnection]:
        query = self.db.query(WhatsAppConnection).filter(WhatsAppConnection.manager_id == manager_id)
        if active_only:
            query = query.filter(WhatsAppConnection.is_active.is_(True))
        return query.first()

    def find_for_user(self, user: User) -> Optional[WhatsAppConnection]:
        # Agents send through their manager's connection
        if user.role == "agent":
            if not user.manager_id:
                return None
            return self.find_for_manager(user.manager_id)
        return self.find_for_manager(user.id)

    def _validate(self, creds: WhatsAppCredentials):
        try:
            valid, error = WhatsAppClient(creds.access_token, creds.phone_number_id).validate()
        except TRANSIENT_ERRORS as e:
            logger.error(f"🔌 WhatsApp validation unreachable: {e}")
            raise ValidationError("Could not reach the WhatsApp API to validate credentials")
        if not valid:
            logger.warning(f"⚠️ Invalid WhatsApp credentials: {error}")
            raise ValidationError({"error": "Invalid WhatsApp API credentials", "details": error})

    def _apply(self, connection: WhatsAppConnection, creds: WhatsAppCredentials):
        connection.wa_access_token = creds.access_token
        connection.wa_phone_number_id = creds.phone_number_id
        connection.wa_business_account_id = creds.business_account_id
        connection.wa_app_id = creds.app_id
        connection.wa_webhook_verify_token = creds.webhook_verify_token
        connection.is_active = True

    def connect(self, manager: User, creds: WhatsAppCredentials) -> WhatsAppConnection:
        existing = self.find_for_manager(manager.id, active_only=False)
        if existing and existing.is_active:
            raise ConflictError("WhatsApp connection already exists")

        self._validate(creds)
        connection = existing or WhatsAppConnection(manager_id=manager.id)
        self._apply(connection, creds)
        if not existing:
            self.db.add(connection)
        self.db.commit()
        self.db.refresh(connection)
        logger.info(f"✅ WhatsApp connected for manager {manager.id}")
        return connection

    def update(self, manager: User, creds: WhatsAppCredentials) -> WhatsAppConnection:
        connection = self.find_for_manager(manager.id, active_only=False)
        if not connection:
            raise NotFoundError("No WhatsApp connection found")

        self._validate(creds)
        self._apply(connection, creds)
        self.db.commit()
        self.db.refresh(connection)
        return connection

    def disconnect(self, manager: User):
        connection = self.find_for_manager(manager.id, active_only=False)
        if not connection:
            raise NotFoundError("No WhatsApp connection found")
        self.db.delete(connection)
        self.db.commit()
        logger.info(f"🔌 WhatsApp disconnected for manager {manager.id}")

    # ---------------------------------------------------------
    # MESSAGING
    # ---------------------------------------------------------
    def send(self, user: User, phone_numbers: List[str], message: str) -> dict:
        if not message.strip():
            raise ValidationError("Message is required")
        if not phone_numbers:
            raise ValidationError("At least one phone number is required")

        connection = self.find_for_user(user)
        if not connection:
            hint = (
                "Please connect your WhatsApp account first"
                if user.role == "manager"
                else "Your manager needs to connect WhatsApp first"
            )
            raise ValidationError({"error": "No active WhatsApp connection found", "message": hint})

        client = WhatsAppClient(connection.wa_access_token, connection.wa_phone_number_id)
        results, errors = [], []
        for phone in phone_numbers:
            try:
                message_id = client.send_text(phone, message)
                results.append({"phone_number": phone, "status": "sent", "message_id": message_id})
            except Exception as e:
                logger.error(f"❌ WhatsApp send to {phone} failed: {e}")
                errors.append({"phone_number": phone, "error": str(e) or "Failed to send message"})

        connection.last_used_at = datetime.utcnow()
        self.db.commit()

        return {
            "success": True,
            "sent_count": len(results),
            "error_count": len(errors),
            "results": results,
            "errors": errors,
        }
