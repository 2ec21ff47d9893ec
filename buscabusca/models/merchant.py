"""Merchant registration model."""

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text

from buscabusca.database import Base, utcnow

# Form fields, grouped by the registration step they belong to
MERCHANT_FIELDS = (
    # Identification
    "tipo_pessoa",
    "cnpj",
    "razao_social",
    "nome_fantasia",
    "data_abertura",
    "capital_social",
    "regime_tributario",
    "inscricao_estadual",
    # Legal representative
    "resp_nome",
    "resp_cpf",
    "resp_email",
    "resp_telefone",
    # Segment & products
    "segmento",
    "descricao_produtos",
    "origem_produtos",
    "produtos_restritos",
    # Structure & logistics
    "possui_loja",
    "possui_estoque",
    "estoque_cep",
    "estoque_endereco",
    "logistica_envio",
    # Financial
    "emissao_nf",
    "banco",
    "agencia",
    "conta",
    "tipo_conta",
    # Strategy
    "volume_pedidos",
    # Acceptance
    "aceite_termos",
    "aceite_veracidade",
)

REQUIRED_FIELDS = ("tipo_pessoa", "aceite_termos", "aceite_veracidade", "resp_nome", "resp_email")


class Merchant(Base):
    """Merchant registration owned by a user."""

    __tablename__ = "lojistas"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)

    tipo_pessoa = Column(String(8), nullable=False)
    cnpj = Column(String(32), nullable=True)
    razao_social = Column(String(256), nullable=True)
    nome_fantasia = Column(String(256), nullable=True)
    data_abertura = Column(String(32), nullable=True)
    capital_social = Column(Float, nullable=True)
    regime_tributario = Column(String(64), nullable=True)
    inscricao_estadual = Column(String(64), nullable=True)

    resp_nome = Column(String(256), nullable=False)
    resp_cpf = Column(String(32), nullable=True)
    resp_email = Column(String(256), nullable=False)
    resp_telefone = Column(String(32), nullable=True)

    segmento = Column(String(128), nullable=True)
    descricao_produtos = Column(Text, nullable=True)
    origem_produtos = Column(String(128), nullable=True)
    produtos_restritos = Column(Boolean, nullable=False, default=False)

    possui_loja = Column(Boolean, nullable=False, default=False)
    possui_estoque = Column(Boolean, nullable=False, default=False)
    estoque_cep = Column(String(16), nullable=True)
    estoque_endereco = Column(String(512), nullable=True)
    logistica_envio = Column(String(128), nullable=True)

    emissao_nf = Column(String(64), nullable=True)
    banco = Column(String(64), nullable=True)
    agencia = Column(String(16), nullable=True)
    conta = Column(String(32), nullable=True)
    tipo_conta = Column(String(32), nullable=True)

    volume_pedidos = Column(String(64), nullable=True)

    aceite_termos = Column(Boolean, nullable=False, default=False)
    aceite_veracidade = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
