import os
import uuid
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import httpx
from fastapi import HTTPException, UploadFile, status

from cms.core.config import settings

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png"}
PDF_EXTENSION = ".pdf"


class FileUploader:
    def __init__(self, base_path: str = settings.UPLOAD_DIR):
        self.base_path = base_path
        self._ensure_base_path()

    def _ensure_base_path(self):
        """Garante que o diretório base exista"""
        Path(self.base_path).mkdir(parents=True, exist_ok=True)

    def _generate_unique_filename(self, prefix: str, extension: str) -> str:
        """Gera um nome único com timestamp e parte de um UUID"""
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        unique_id = str(uuid.uuid4())[:8]
        return f"{prefix}-{timestamp}-{unique_id}{extension}"

    def _validate_extension(self, file: UploadFile, allow_pdf: bool) -> str:
        extension = os.path.splitext(file.filename or "")[1].lower() or ".jpg"
        allowed = IMAGE_EXTENSIONS | ({PDF_EXTENSION} if allow_pdf else set())
        if extension not in allowed:
            detail = "Apenas arquivos .png, .jpg e .pdf são permitidos" if allow_pdf \
                else "Apenas arquivos .png e .jpg são permitidos"
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
        return extension

    async def save(
        self,
        file: UploadFile,
        prefix: str,
        allow_pdf: bool = False,
        max_size_mb: Optional[int] = None
    ) -> str:
        """
        Salva um comprovante e retorna a URL que será gravada no registro.

        Com BLOB_READ_WRITE_TOKEN configurado o arquivo vai para o blob store;
        sem ele, é gravado em disco dentro de <base_path>/comprovantes.

        Args:
            file: Arquivo recebido no formulário multipart
            prefix: Prefixo do nome (ex: driver-3-carga)
            allow_pdf: Aceita PDF além de imagens
            max_size_mb: Limite de tamanho; padrão MAX_UPLOAD_SIZE_MB

        Returns:
            str: URL pública (blob) ou caminho sob STATIC_URL_PREFIX
        """
        extension = self._validate_extension(file, allow_pdf)
        content = await file.read()
        limit = (max_size_mb or settings.MAX_UPLOAD_SIZE_MB) * 1024 * 1024
        if len(content) > limit:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Arquivo excede o limite de {limit // (1024 * 1024)}MB"
            )

        filename = self._generate_unique_filename(prefix, extension)
        if settings.BLOB_READ_WRITE_TOKEN:
            return await self._upload_to_blob(content, filename, file.content_type)

        document_path = os.path.join(self.base_path, "comprovantes")
        Path(document_path).mkdir(parents=True, exist_ok=True)
        with open(os.path.join(document_path, filename), "wb") as f:
            f.write(content)
        return self.get_file_url(f"comprovantes/{filename}")

    async def _upload_to_blob(self, content: bytes, filename: str, content_type: Optional[str]) -> str:
        headers = {
            "Authorization": f"Bearer {settings.BLOB_READ_WRITE_TOKEN}",
            "x-api-version": "7",
            "x-content-type": content_type or "application/octet-stream",
        }
        try:
            async with httpx.AsyncClient() as client:
                response = await client.put(
                    f"{settings.BLOB_API_URL}/comprovantes/{filename}",
                    headers=headers,
                    content=content
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Falha ao enviar %s para o blob store: %s", filename, e)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Falha ao armazenar o arquivo"
            )
        return response.json()["url"]

    def delete(self, file_url: Optional[str]) -> None:
        """
        Remove um arquivo salvo por `save`.

        URLs sob STATIC_URL_PREFIX apontam para o disco local; as demais são do
        blob store. Falhas são apenas registradas: o registro já foi removido.
        """
        if not file_url:
            return
        prefix = f"{settings.STATIC_URL_PREFIX}/"
        if file_url.startswith(prefix):
            file_path = Path(self.base_path) / file_url[len(prefix):]
            try:
                if file_path.exists():
                    file_path.unlink()
            except OSError as e:
                logger.error("Falha ao remover %s: %s", file_path, e)
            return
        if not settings.BLOB_READ_WRITE_TOKEN:
            logger.warning("Arquivo %s não removido: blob store não configurado", file_url)
            return
        try:
            response = httpx.post(
                f"{settings.BLOB_API_URL}/delete",
                headers={"Authorization": f"Bearer {settings.BLOB_READ_WRITE_TOKEN}", "x-api-version": "7"},
                json={"urls": [file_url]}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Falha ao remover %s do blob store: %s", file_url, e)

    def get_file_url(self, relative_path: str) -> str:
        """Converte um caminho relativo em URL usando o prefixo configurado"""
        return f"{settings.STATIC_URL_PREFIX}/{relative_path.replace(os.sep, '/')}"


# Instância global do uploader
uploader = FileUploader()
