import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from cms.core.db import SessionDep
from cms.core.dependencies.auth import TokenData, get_token_data
from cms.services.auth_service import AuthService
from cms.services.verification_service import Channel, VerificationService, get_verification_service

router = APIRouter(prefix="/api/auth", tags=["AUTH"])


class DriverSignupRequest(BaseModel):
    name: Optional[str] = None
    plate: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    cpf: Optional[str] = None


class CpfLoginRequest(BaseModel):
    cpf: Optional[str] = None
    password: Optional[str] = None


class AdminLoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class ClienteLoginRequest(BaseModel):
    document: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    phone: Optional[str] = None
    channel: Channel = Channel.SMS


class ResetPasswordRequest(BaseModel):
    phone: Optional[str] = None
    code: Optional[str] = None
    new_password: Optional[str] = None


@router.post("/driver/signup", status_code=status.HTTP_201_CREATED, description="""
Cadastro do motorista pelo aplicativo.

**Body:**
```json
{
    "name": "João Silva",
    "plate": "ABC-1D23",
    "password": "1234",
    "phone": "11987654321",
    "cpf": "529.982.247-25"
}
```

**Validações:**
- Todos os campos são obrigatórios; nome com pelo menos 2 caracteres e senha com pelo menos 4.
- CPF com dígitos verificadores válidos; telefone brasileiro com pelo menos 10 dígitos.
- Placa no formato ABC-1234 ou ABC-1D23.
- Placa, CPF e telefone não podem estar cadastrados (409).

**Resposta:**
Token JWT do motorista e um resumo do cadastro. O valor por km x tonelada começa em 0.
""")
def driver_signup(data: DriverSignupRequest, session: SessionDep):
    try:
        return AuthService(session).driver_signup(
            data.name, data.plate, data.password, data.phone, data.cpf)
    except HTTPException:
        raise
    except Exception:
        logging.exception("Unexpected error on driver signup")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/driver/login", description="""
Login do motorista por CPF e senha.

- CPF com formatação é aceito; precisa ter 11 dígitos (400).
- Credenciais erradas ou motorista inativo retornam 401.
""")
def driver_login(data: CpfLoginRequest, session: SessionDep):
    return AuthService(session).driver_login(data.cpf, data.password)


@router.post("/admin/login", description="""
Login do administrador.

**Resposta:**
`token` com perfil `admin` e os dados básicos do administrador.
""")
def admin_login(data: AdminLoginRequest, session: SessionDep):
    return AuthService(session).admin_login(data.username, data.password)


@router.post("/abastecedor/login", description="""
Login do abastecedor por CPF e senha. O CPF precisa ter dígitos verificadores válidos.
""")
def abastecedor_login(data: CpfLoginRequest, session: SessionDep):
    return AuthService(session).abastecedor_login(data.cpf, data.password)


@router.post("/cliente/login", description="""
Login do cliente. `document` pode ser o CPF ou o CNPJ cadastrado pelo administrador.
""")
def cliente_login(data: ClienteLoginRequest, session: SessionDep):
    return AuthService(session).cliente_login(data.document, data.password)


@router.get("/verify", description="""
Valida o token enviado no header `Authorization: Bearer <token>`.

**Resposta:**
`{"valid": true, "type": "<perfil>", "user": {...}}` ou 401 quando o token é inválido,
expirou ou o usuário não existe mais.
""")
def verify_token(session: SessionDep, token: TokenData = Depends(get_token_data)):
    return AuthService(session).verify(token.role, token.id)


@router.post("/driver/forgot-password", description="""
Envia um código de verificação para o telefone do motorista.

- `channel`: `sms` (Twilio Verify) ou `whatsapp` (código gerado pelo servidor, válido por alguns minutos).
- 404 quando nenhum motorista tem o telefone informado.
""")
def forgot_password(
    data: ForgotPasswordRequest,
    session: SessionDep,
    verification: VerificationService = Depends(get_verification_service)
):
    try:
        return AuthService(session).forgot_password(data.phone, data.channel, verification)
    except HTTPException:
        raise
    except Exception:
        logging.exception("Unexpected error sending verification code")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/driver/reset-password", description="""
Redefine a senha do motorista depois de conferir o código recebido.

- 400 quando o código é inválido ou expirou.
- O código de WhatsApp só pode ser usado uma vez.
""")
def reset_password(
    data: ResetPasswordRequest,
    session: SessionDep,
    verification: VerificationService = Depends(get_verification_service)
):
    try:
        return AuthService(session).reset_password(data.phone, data.code, data.new_password, verification)
    except HTTPException:
        raise
    except Exception:
        logging.exception("Unexpected error resetting password")
        raise HTTPException(status_code=500, detail="Internal server error")
