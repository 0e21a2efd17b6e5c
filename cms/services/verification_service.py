import asyncio
import logging
import random
from dataclasses import dataclass
from enum import Enum

from fastapi import HTTPException, status
from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from cms.core.config import settings
from cms.utils.otp_cache import OtpCache, OtpStatus
from cms.utils.validators import to_e164

logger = logging.getLogger(__name__)

# Códigos de erro do Twilio Verify tratados como falha de verificação
TWILIO_NOT_FOUND = 20404
TWILIO_MAX_ATTEMPTS = 60202


class Channel(str, Enum):
    SMS = "sms"
    WHATSAPP = "whatsapp"


@dataclass
class VerificationResult:
    valid: bool
    status: str


# Códigos enviados por WhatsApp ficam só na memória deste processo
otp_cache = OtpCache(
    ttl_seconds=settings.VERIFICATION_CODE_EXPIRY_MINUTES * 60,
    max_attempts=settings.MAX_VERIFICATION_ATTEMPTS,
)


async def sweep_expired_codes(cache: OtpCache = otp_cache,
                              interval: float = settings.OTP_SWEEP_INTERVAL_SECONDS):
    """Tarefa de fundo iniciada no lifespan: remove códigos expirados periodicamente."""
    while True:
        await asyncio.sleep(interval)
        removed = cache.sweep()
        if removed:
            logger.debug("%s código(s) de verificação expirado(s) removido(s)", removed)


class VerificationService:
    def __init__(self, cache: OtpCache = otp_cache):
        self.cache = cache

    def _client(self) -> Client:
        if not settings.TWILIO_ACCOUNT_SID or not settings.TWILIO_AUTH_TOKEN:
            logger.error("Credenciais do Twilio não configuradas")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Serviço de verificação não configurado")
        return Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)

    def _verify_service(self):
        if not settings.TWILIO_SERVICE_ID:
            logger.error("TWILIO_SERVICE_ID não configurado")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Serviço de verificação não configurado")
        return self._client().verify.v2.services(settings.TWILIO_SERVICE_ID)

    def generate_verification_code(self) -> str:
        return ''.join(random.SystemRandom().choices('0123456789', k=6))

    def send_code(self, phone: str, channel: Channel = Channel.SMS) -> dict:
        to_phone = to_e164(phone)
        try:
            if channel == Channel.WHATSAPP:
                code = self.generate_verification_code()
                whatsapp_from = settings.TWILIO_WHATSAPP_FROM or ""
                if not whatsapp_from.startswith("whatsapp:"):
                    whatsapp_from = f"whatsapp:{whatsapp_from}"
                message = self._client().messages.create(
                    body=(f"Seu código de verificação é {code}. "
                          f"Ele expira em {settings.VERIFICATION_CODE_EXPIRY_MINUTES} minutos."),
                    from_=whatsapp_from,
                    to=f"whatsapp:{to_phone}"
                )
                self.cache.put(to_phone, code)
                logger.info("Código enviado por WhatsApp para %s (SID %s)", to_phone, message.sid)
                return {"success": True, "channel": channel.value, "sid": message.sid}

            verification = self._verify_service().verifications.create(to=to_phone, channel="sms")
            logger.info("Verificação SMS enviada para %s (status %s)", to_phone, verification.status)
            return {"success": True, "channel": channel.value, "sid": verification.sid,
                    "status": verification.status}
        except TwilioRestException as e:
            logger.error("Erro do Twilio ao enviar código para %s: %s", to_phone, e)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Falha ao enviar código de verificação")

    def check_code(self, phone: str, code: str) -> VerificationResult:
        """
        Confere primeiro os códigos guardados em memória (WhatsApp); sem código
        local para o telefone, consulta o Twilio Verify (SMS).
        """
        to_phone = to_e164(phone)
        local = self.cache.check(to_phone, code)
        if local is not None:
            return VerificationResult(valid=local == OtpStatus.APPROVED, status=local.value)

        try:
            check = self._verify_service().verification_checks.create(to=to_phone, code=code)
        except TwilioRestException as e:
            if e.code == TWILIO_NOT_FOUND:
                return VerificationResult(valid=False, status="not_found")
            if e.code == TWILIO_MAX_ATTEMPTS:
                return VerificationResult(valid=False, status="max_attempts_reached")
            raise
        return VerificationResult(valid=check.status == "approved", status=check.status)


def get_verification_service() -> VerificationService:
    return VerificationService()
