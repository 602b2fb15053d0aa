"""
Bulk citizen import from CSV.

The file is validated as a whole before anything is written: row validation,
then CPFs repeated inside the file, then CPFs already registered in the
tenant. Only a clean file is inserted, in batches committed one at a time.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple

import pandas as pd
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from aurora.core.errors import BadRequestError, ServiceFailureError
from aurora.db.models.enums import Parentesco, Sexo
from aurora.repositories.citizens import FamiliaRepository, IndividuoRepository
from aurora.schemas.common import only_digits
from aurora.schemas.imports import ImportLineError, ImportResult
from aurora.services.base import BaseService

logger = logging.getLogger(__name__)

TEMPLATE_FILENAME = "template-importacao-cidadaos.csv"

CSV_COLUMNS = [
    "nomeCompleto",
    "cpf",
    "dataNascimento",
    "sexo",
    "nomeMae",
    "nis",
    "rg",
    "tituloEleitor",
    "carteiraTrabalho",
    "endereco",
    "rendaFamiliarTotal",
    "ehResponsavel",
]

TEMPLATE_EXAMPLE = [
    "João da Silva",
    "12345678901",
    "1985-05-15",
    "MASCULINO",
    "Maria da Silva",
    "10987654321",
    "MG1234567",
    "123456789012",
    "1234567",
    "Rua das Flores, 123, Centro",
    "1500.00",
    "SIM",
]

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SEXOS = {s.value for s in Sexo}

# Line numbers count the header as line 1.
FIRST_DATA_LINE = 2


@dataclass
class CitizenRow:
    """One validated CSV row."""

    line: int
    nome_completo: str
    cpf: str
    data_nascimento: date
    sexo: str
    nome_mae: Optional[str]
    nis: Optional[str]
    rg: Optional[str]
    titulo_eleitor: Optional[str]
    carteira_trabalho: Optional[str]
    endereco: Optional[str]
    renda_familiar_total: Optional[Decimal]
    eh_responsavel: bool

    def individuo_fields(self) -> dict:
        return {
            "nome_completo": self.nome_completo,
            "cpf": self.cpf,
            "data_nascimento": self.data_nascimento,
            "sexo": self.sexo,
            "nome_mae": self.nome_mae,
            "nis": self.nis,
            "rg": self.rg,
            "titulo_eleitor": self.titulo_eleitor,
            "carteira_trabalho": self.carteira_trabalho,
        }


# PUBLIC_INTERFACE
def build_template() -> str:
    """CSV template: header line plus one example row."""
    frame = pd.DataFrame([TEMPLATE_EXAMPLE], columns=CSV_COLUMNS)
    return frame.to_csv(index=False, lineterminator="\n")


# PUBLIC_INTERFACE
def parse_csv(content: bytes) -> List[Dict[str, str]]:
    """
    Parse the upload into row dicts keyed by header.

    UTF-8 with or without BOM; headers and cells are trimmed and empty lines
    skipped.

    Raises:
        BadRequestError: the file cannot be parsed or holds no data rows.
    """
    try:
        frame = pd.read_csv(
            io.BytesIO(content),
            dtype=str,
            keep_default_na=False,
            encoding="utf-8-sig",
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        raise BadRequestError("CSV está vazio ou não contém dados válidos")
    except (pd.errors.ParserError, UnicodeDecodeError, ValueError) as exc:
        raise BadRequestError(f"Erro ao processar CSV: {exc}")

    frame.columns = [str(c).strip() for c in frame.columns]
    frame = frame.apply(lambda col: col.str.strip())
    frame = frame[(frame != "").any(axis=1)]
    rows = frame.to_dict(orient="records")
    if not rows:
        raise BadRequestError("CSV está vazio ou não contém dados válidos")
    return rows


def _optional(value: str) -> Optional[str]:
    return value or None


# PUBLIC_INTERFACE
def validate_row(raw: Dict[str, str], line: int) -> Tuple[Optional[CitizenRow], List[str]]:
    """Normalize CPF/NIS to digits and validate one row; returns (row, errors)."""
    def get(key: str) -> str:
        return (raw.get(key) or "").strip()

    errors: List[str] = []

    nome = get("nomeCompleto")
    if len(nome) < 3:
        errors.append("nomeCompleto: Nome deve ter ao menos 3 caracteres")

    cpf = only_digits(get("cpf"))
    if len(cpf) != 11:
        errors.append("cpf: CPF deve conter exatamente 11 dígitos")

    nascimento: Optional[date] = None
    raw_date = get("dataNascimento")
    if not _DATE_RE.match(raw_date):
        errors.append("dataNascimento: Data deve estar no formato YYYY-MM-DD")
    else:
        try:
            nascimento = date.fromisoformat(raw_date)
        except ValueError:
            errors.append("dataNascimento: Data de nascimento inválida")

    sexo = get("sexo").upper()
    if sexo not in _SEXOS:
        errors.append("sexo: Sexo deve ser MASCULINO, FEMININO ou OUTRO")

    nis = only_digits(get("nis")) or None
    if nis is not None and len(nis) != 11:
        errors.append("nis: NIS deve conter exatamente 11 dígitos")

    renda: Optional[Decimal] = None
    raw_renda = get("rendaFamiliarTotal")
    if raw_renda:
        try:
            renda = Decimal(raw_renda.replace(",", "."))
        except InvalidOperation:
            errors.append("rendaFamiliarTotal: Renda familiar deve ser um número")
        else:
            if renda < 0:
                errors.append("rendaFamiliarTotal: Renda familiar não pode ser negativa")

    responsavel = get("ehResponsavel").upper()
    if responsavel not in ("", "SIM", "NAO"):
        errors.append("ehResponsavel: Valor deve ser SIM ou NAO")

    if errors:
        return None, errors
    return (
        CitizenRow(
            line=line,
            nome_completo=nome,
            cpf=cpf,
            data_nascimento=nascimento,
            sexo=sexo,
            nome_mae=_optional(get("nomeMae")),
            nis=nis,
            rg=_optional(get("rg")),
            titulo_eleitor=_optional(get("tituloEleitor")),
            carteira_trabalho=_optional(get("carteiraTrabalho")),
            endereco=_optional(get("endereco")),
            renda_familiar_total=renda,
            eh_responsavel=responsavel == "SIM",
        ),
        [],
    )


def _failure(errors: List[ImportLineError], message: str) -> ImportResult:
    return ImportResult(success=False, imported=0, errors=errors, message=message)


class ImportService(BaseService):
    """CSV import of citizens into the session's tenant."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.individuos = IndividuoRepository(session)
        self.familias = FamiliaRepository(session)

    # PUBLIC_INTERFACE
    async def import_citizens(self, content: bytes, batch_size: int = 100) -> ImportResult:
        """
        Validate and import a CSV of citizens.

        Validation problems are returned in the result with nothing imported;
        unreadable files raise BadRequestError.
        """
        raw_rows = parse_csv(content)

        rows: List[CitizenRow] = []
        line_errors: List[ImportLineError] = []
        for index, raw in enumerate(raw_rows):
            line = index + FIRST_DATA_LINE
            row, errors = validate_row(raw, line)
            if errors:
                line_errors.append(ImportLineError(line=line, cpf=raw.get("cpf") or None, errors=errors))
            else:
                rows.append(row)
        if line_errors:
            return _failure(
                line_errors,
                f"{len(line_errors)} linha(s) com erro de validação. Corrija os erros e tente novamente.",
            )

        seen: Dict[str, int] = {}
        duplicates: List[ImportLineError] = []
        for row in rows:
            if row.cpf in seen:
                duplicates.append(
                    ImportLineError(line=row.line, cpf=row.cpf, errors=[f"CPF {row.cpf} aparece múltiplas vezes no arquivo"])
                )
            else:
                seen[row.cpf] = row.line
        if duplicates:
            return _failure(duplicates, "CPFs duplicados encontrados no arquivo. Cada CPF deve aparecer apenas uma vez.")

        existing = await self.individuos.existing_cpfs(seen.keys())
        if existing:
            registered = [
                ImportLineError(line=seen[cpf], cpf=cpf, errors=[f"CPF {cpf} já está cadastrado no sistema"])
                for cpf in sorted(existing, key=lambda c: seen[c])
            ]
            return _failure(
                registered,
                f"{len(existing)} CPF(s) já cadastrado(s) no sistema. Remova-os do arquivo e tente novamente.",
            )

        imported = 0
        for start in range(0, len(rows), batch_size):
            batch = rows[start:start + batch_size]
            try:
                await self._insert_batch(batch)
                await self.session.commit()
            except SQLAlchemyError as exc:
                await self.session.rollback()
                logger.exception("CSV import failed after %d row(s)", imported)
                raise ServiceFailureError(
                    f"Erro ao salvar dados: {exc.__class__.__name__}", details={"imported": imported}
                ) from exc
            imported += len(batch)

        logger.info("CSV import finished: %d citizen(s)", imported)
        return ImportResult(
            success=True,
            imported=imported,
            errors=[],
            message=f"{imported} cidadão(s) importado(s) com sucesso!",
        )

    async def _insert_batch(self, batch: List[CitizenRow]) -> None:
        for row in batch:
            individuo = await self.individuos.create(**row.individuo_fields())
            if row.eh_responsavel and row.endereco:
                familia = await self.familias.create(
                    responsavel_familiar_id=individuo.id,
                    endereco=row.endereco,
                    renda_familiar_total=row.renda_familiar_total,
                )
                await self.familias.add_member(familia.id, individuo.id, Parentesco.RESPONSAVEL.value)
