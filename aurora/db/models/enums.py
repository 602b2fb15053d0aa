from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    GESTOR = "GESTOR"
    TECNICO = "TECNICO"


class UserStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class Sexo(str, Enum):
    MASCULINO = "MASCULINO"
    FEMININO = "FEMININO"
    OUTRO = "OUTRO"


class Parentesco(str, Enum):
    RESPONSAVEL = "RESPONSAVEL"
    CONJUGE = "CONJUGE"
    FILHO = "FILHO"
    ENTEADO = "ENTEADO"
    NETO = "NETO"
    PAI_MAE = "PAI_MAE"
    SOGRO_SOGRA = "SOGRO_SOGRA"
    IRMAO_IRMA = "IRMAO_IRMA"
    GENRO_NORA = "GENRO_NORA"
    OUTRO = "OUTRO"


class TipoDemanda(str, Enum):
    BENEFICIO_EVENTUAL = "BENEFICIO_EVENTUAL"
    CADASTRO_UNICO = "CADASTRO_UNICO"
    BPC = "BPC"
    BOLSA_FAMILIA = "BOLSA_FAMILIA"
    ORIENTACAO_SOCIAL = "ORIENTACAO_SOCIAL"
    ENCAMINHAMENTO_SAUDE = "ENCAMINHAMENTO_SAUDE"
    ENCAMINHAMENTO_EDUCACAO = "ENCAMINHAMENTO_EDUCACAO"
    VIOLACAO_DIREITOS = "VIOLACAO_DIREITOS"
    OUTRO = "OUTRO"


ROLE_LABELS = {
    UserRole.GESTOR.value: "Gestor",
    UserRole.TECNICO.value: "Técnico",
}

TIPO_DEMANDA_LABELS = {
    TipoDemanda.BENEFICIO_EVENTUAL.value: "Benefício Eventual",
    TipoDemanda.CADASTRO_UNICO.value: "Cadastro Único",
    TipoDemanda.BPC.value: "BPC",
    TipoDemanda.BOLSA_FAMILIA.value: "Bolsa Família",
    TipoDemanda.ORIENTACAO_SOCIAL.value: "Orientação Social",
    TipoDemanda.ENCAMINHAMENTO_SAUDE.value: "Encaminhamento Saúde",
    TipoDemanda.ENCAMINHAMENTO_EDUCACAO.value: "Encaminhamento Educação",
    TipoDemanda.VIOLACAO_DIREITOS.value: "Violação de Direitos",
    TipoDemanda.OUTRO.value: "Outro",
}
