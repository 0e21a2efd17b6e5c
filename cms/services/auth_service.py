import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlmodel import Session, select

from cms.core.dependencies.auth import Role
from cms.core.security import create_access_token, hash_password, verify_password
from cms.models.abastecedor import Abastecedor
from cms.models.admin import Admin
from cms.models.client import Client
from cms.models.driver import Driver
from cms.services.driver_service import DriverService, INVALID_PLATE_DETAIL
from cms.services.verification_service import Channel, VerificationService
from cms.utils.validators import (
    clean_digits, is_valid_cpf, is_valid_phone, is_valid_plate, national_phone, normalize_plate
)

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 4


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def driver_token(driver: Driver) -> str:
    return create_access_token(driver.id, Role.DRIVER.value, name=driver.name, plate=driver.plate)


class AuthService:
    def __init__(self, session: Session):
        self.session = session
        self.drivers = DriverService(session)

    def driver_signup(self, name: str, plate: str, password: str, phone: str, cpf: str) -> dict:
        if not all([name, plate, password, phone, cpf]):
            raise _bad_request("Todos os campos são obrigatórios")
        if len(name.strip()) < 2:
            raise _bad_request("Nome deve ter pelo menos 2 caracteres")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise _bad_request(f"Senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres")
        if not is_valid_cpf(cpf):
            raise _bad_request("CPF inválido. Verifique os números.")
        if not is_valid_phone(phone):
            raise _bad_request("Telefone inválido. Deve conter pelo menos 10 dígitos")
        if not is_valid_plate(plate):
            raise _bad_request(INVALID_PLATE_DETAIL)

        normalized_plate = normalize_plate(plate)
        cpf_digits = clean_digits(cpf)
        phone_digits = national_phone(phone)
        if self.drivers.find_by_primary_plate(normalized_plate):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Placa já cadastrada no sistema")
        if self.drivers.find_by_cpf(cpf_digits):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="CPF já cadastrado no sistema")
        if self.drivers.find_by_phone(phone_digits):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Telefone já cadastrado no sistema")

        # O valor por km x tonelada fica 0 até o admin definir
        driver = Driver(
            name=name.strip(),
            plates=[normalized_plate],
            price_per_km_ton=0,
            password=hash_password(password),
            phone=phone_digits,
            cpf=cpf_digits,
        )
        self.session.add(driver)
        self.session.commit()
        self.session.refresh(driver)
        logger.info("Cadastro do motorista %s concluído", driver.id)
        return {
            "message": "Cadastro realizado com sucesso",
            "token": driver_token(driver),
            "driver": {"id": driver.id, "name": driver.name, "plate": driver.plate},
        }

    def driver_login(self, cpf: str, password: str) -> dict:
        if not cpf or not password:
            raise _bad_request("CPF e senha são obrigatórios")
        cpf_digits = clean_digits(cpf)
        if len(cpf_digits) != 11:
            raise _bad_request("CPF inválido. Deve ter 11 dígitos.")
        driver = self.drivers.find_by_cpf(cpf_digits)
        if not driver or not verify_password(password, driver.password):
            raise _unauthorized("CPF ou senha inválidos")
        if not driver.active:
            raise _unauthorized("Conta do motorista está inativa")
        return {
            "message": "Login realizado com sucesso",
            "token": driver_token(driver),
            "driver": {"id": driver.id, "name": driver.name, "plate": driver.plate},
        }

    def admin_login(self, username: str, password: str) -> dict:
        if not username or not password:
            raise _bad_request("Usuário e senha são obrigatórios")
        admin = self.session.exec(select(Admin).where(Admin.username == username)).first()
        if not admin or not verify_password(password, admin.password):
            raise _unauthorized("Credenciais inválidas")
        token = create_access_token(admin.id, Role.ADMIN.value, username=admin.username)
        return {
            "message": "Login realizado com sucesso",
            "token": token,
            "admin": {"id": admin.id, "username": admin.username},
        }

    def abastecedor_login(self, cpf: str, password: str) -> dict:
        if not cpf or not password:
            raise _bad_request("CPF e senha são obrigatórios")
        if not is_valid_cpf(cpf):
            raise _bad_request("CPF inválido")
        abastecedor = self.session.exec(
            select(Abastecedor).where(Abastecedor.cpf == clean_digits(cpf))).first()
        if not abastecedor or not verify_password(password, abastecedor.password):
            raise _unauthorized("CPF ou senha inválidos")
        if not abastecedor.active:
            raise _unauthorized("Conta de abastecedor inativa")
        token = create_access_token(
            abastecedor.id, Role.ABASTECEDOR.value, name=abastecedor.name, cpf=abastecedor.cpf)
        return {
            "message": "Login realizado com sucesso",
            "token": token,
            "abastecedor": {"id": abastecedor.id, "name": abastecedor.name},
        }

    def cliente_login(self, document: str, password: str) -> dict:
        """Login do cliente por CPF (11 dígitos) ou CNPJ (14 dígitos)."""
        if not document or not password:
            raise _bad_request("Documento e senha são obrigatórios")
        digits = clean_digits(document)
        if len(digits) == 11:
            column = Client.cpf
        elif len(digits) == 14:
            column = Client.cnpj
        else:
            raise _bad_request("Informe um CPF ou CNPJ válido")
        client = self.session.exec(select(Client).where(column == digits)).first()
        if not client or not verify_password(password, client.password):
            raise _unauthorized("Documento ou senha inválidos")
        if not client.active:
            raise _unauthorized("Conta do cliente está inativa")
        token = create_access_token(client.id, Role.CLIENTE.value, empresa=client.empresa, name=client.name)
        return {
            "message": "Login realizado com sucesso",
            "token": token,
            "cliente": {"id": client.id, "empresa": client.empresa, "name": client.name},
        }

    def verify(self, role: Role, user_id: int) -> dict:
        """Confere se o dono do token ainda existe e devolve um resumo dele."""
        if role == Role.ADMIN:
            admin = self.session.get(Admin, user_id)
            user = {"id": admin.id, "username": admin.username} if admin else None
        elif role == Role.DRIVER:
            driver = self.session.get(Driver, user_id)
            user = {"id": driver.id, "name": driver.name, "plate": driver.plate} \
                if driver and driver.active else None
        elif role == Role.ABASTECEDOR:
            abastecedor = self.session.get(Abastecedor, user_id)
            user = {"id": abastecedor.id, "name": abastecedor.name} \
                if abastecedor and abastecedor.active else None
        else:
            client = self.session.get(Client, user_id)
            user = {"id": client.id, "empresa": client.empresa, "name": client.name} \
                if client and client.active else None
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Usuário do token não encontrado ou inativo",
                headers={"WWW-Authenticate": "Bearer"})
        return {"valid": True, "type": role.value, "user": user}

    # Recuperação de senha do motorista

    def _driver_by_phone(self, phone: str) -> Optional[Driver]:
        return self.drivers.find_by_phone(national_phone(phone))

    def forgot_password(self, phone: str, channel: Channel, verification: VerificationService) -> dict:
        if not phone:
            raise _bad_request("Telefone é obrigatório")
        if not self._driver_by_phone(phone):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Nenhum motorista com este telefone")
        result = verification.send_code(phone, channel)
        return {"message": "Código de verificação enviado", "channel": result["channel"]}

    def reset_password(self, phone: str, code: str, new_password: str,
                       verification: VerificationService) -> dict:
        if not phone or not code or not new_password:
            raise _bad_request("Telefone, código e nova senha são obrigatórios")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise _bad_request(f"Senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres")
        driver = self._driver_by_phone(phone)
        if not driver:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Nenhum motorista com este telefone")
        result = verification.check_code(phone, code)
        if not result.valid:
            raise _bad_request(f"Código de verificação inválido ou expirado ({result.status})")
        driver.password = hash_password(new_password)
        self.session.add(driver)
        self.session.commit()
        logger.info("Senha do motorista %s redefinida", driver.id)
        return {"message": "Senha redefinida com sucesso"}
