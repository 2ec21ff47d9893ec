"""Pydantic schemas for merchant registration endpoints."""

from datetime import datetime

from pydantic import BaseModel


class MerchantPayload(BaseModel):
    """Request body for create and update. Every field is optional at this level;
    required fields are checked by the service so the error names the field."""

    tipo_pessoa: str | None = None
    cnpj: str | None = None
    razao_social: str | None = None
    nome_fantasia: str | None = None
    data_abertura: str | None = None
    capital_social: float | None = None
    regime_tributario: str | None = None
    inscricao_estadual: str | None = None

    resp_nome: str | None = None
    resp_cpf: str | None = None
    resp_email: str | None = None
    resp_telefone: str | None = None

    segmento: str | None = None
    descricao_produtos: str | None = None
    origem_produtos: str | None = None
    produtos_restritos: bool | None = None

    possui_loja: bool | None = None
    possui_estoque: bool | None = None
    estoque_cep: str | None = None
    estoque_endereco: str | None = None
    logistica_envio: str | None = None

    emissao_nf: str | None = None
    banco: str | None = None
    agencia: str | None = None
    conta: str | None = None
    tipo_conta: str | None = None

    volume_pedidos: str | None = None

    aceite_termos: bool | None = None
    aceite_veracidade: bool | None = None


class MerchantResponse(MerchantPayload):
    id: int
    user_id: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MerchantListResponse(BaseModel):
    items: list[MerchantResponse]
    total: int
