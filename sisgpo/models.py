"""Modelos SQLAlchemy para unidades, pessoas e escalas (plantões, serviço de dia, CODEC, aeronaves)."""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    Date,
    DateTime,
    Time,
    ForeignKey,
    Text,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from .database import Base


class Obm(Base):
    """Unidade operacional (OBM), vinculada a um CRBM e a uma cidade."""

    __tablename__ = "obms"

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(255), nullable=False)
    abreviatura = Column(String(50), unique=True, nullable=False, index=True)
    crbm = Column(String(50))
    cidade = Column(String(120))
    created_at = Column(DateTime, default=datetime.utcnow)

    viaturas = relationship("Viatura", back_populates="obm")


class Viatura(Base):
    __tablename__ = "viaturas"

    id = Column(Integer, primary_key=True, index=True)
    prefixo = Column(String(50), unique=True, nullable=False, index=True)
    obm_id = Column(Integer, ForeignKey("obms.id", ondelete="SET NULL"), nullable=True)
    ativa = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    obm = relationship("Obm", back_populates="viaturas")


class Aeronave(Base):
    __tablename__ = "aeronaves"

    id = Column(Integer, primary_key=True, index=True)
    prefixo = Column(String(50), unique=True, nullable=False, index=True)
    tipo_asa = Column(String(20), nullable=False, default="rotativa")  # fixa | rotativa
    ativa = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Militar(Base):
    __tablename__ = "militares"

    id = Column(Integer, primary_key=True, index=True)
    matricula = Column(String(30), unique=True, nullable=False, index=True)
    nome_completo = Column(String(255), nullable=False)
    nome_guerra = Column(String(100))
    posto_graduacao = Column(String(50))
    ativo = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def display_name(self):
        nome = (self.nome_guerra or "").strip() or self.nome_completo
        posto = (self.posto_graduacao or "").strip()
        return f"{posto} {nome}".strip()


class Civil(Base):
    """Civil (ex.: médico regulador) que pode ocupar funções do serviço de dia."""

    __tablename__ = "civis"

    id = Column(Integer, primary_key=True, index=True)
    nome_completo = Column(String(255), nullable=False)
    funcao = Column(String(100))
    ativo = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def display_name(self):
        return self.nome_completo


class Plantao(Base):
    """
    Plantão de uma viatura em uma data. No máximo um por (data_plantao, viatura_id);
    a guarnição pertence ao plantão e é apagada junto (ON DELETE CASCADE).
    """

    __tablename__ = "plantoes"
    __table_args__ = (
        UniqueConstraint("data_plantao", "viatura_id", name="uniq_plantoes_data_viatura"),
    )

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(150), nullable=False)
    data_plantao = Column(Date, nullable=False, index=True)
    viatura_id = Column(Integer, ForeignKey("viaturas.id"), nullable=False)
    obm_id = Column(Integer, ForeignKey("obms.id"), nullable=False)
    observacoes = Column(Text)
    hora_inicio = Column(Time, nullable=True)
    hora_fim = Column(Time, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    guarnicao = relationship(
        "Guarnicao",
        back_populates="plantao",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Guarnicao(Base):
    """Militar escalado em um plantão com uma função (ex.: Motorista)."""

    __tablename__ = "militar_plantao"
    __table_args__ = (
        UniqueConstraint("plantao_id", "militar_id", name="uniq_militar_plantao"),
    )

    id = Column(Integer, primary_key=True, index=True)
    plantao_id = Column(Integer, ForeignKey("plantoes.id", ondelete="CASCADE"), nullable=False, index=True)
    militar_id = Column(Integer, ForeignKey("militares.id", ondelete="SET NULL"), nullable=True)  # null = militar excluído
    funcao = Column(String(100))
    militar_removido_nome = Column(String(255))  # snapshot quando o militar é excluído
    created_at = Column(DateTime, default=datetime.utcnow)

    plantao = relationship("Plantao", back_populates="guarnicao")


class ServicoDia(Base):
    """
    Serviço de dia: pessoa (militar ou civil) em uma função durante [data_inicio, data_fim).
    A referência é polimórfica (pessoa_type + pessoa_id), sem chave estrangeira;
    se a pessoa é excluída a linha fica marcada com pessoa_removida.
    """

    __tablename__ = "servico_dia"
    __table_args__ = (
        UniqueConstraint("data_inicio", "pessoa_id", "pessoa_type", "funcao", name="uniq_servico"),
        CheckConstraint("pessoa_type IN ('militar', 'civil')", name="ck_servico_pessoa_type"),
        CheckConstraint("data_fim > data_inicio", name="ck_servico_janela"),
    )

    id = Column(Integer, primary_key=True, index=True)
    pessoa_type = Column(String(10), nullable=False)
    pessoa_id = Column(Integer, nullable=False)
    funcao = Column(String(100), nullable=False)
    data_inicio = Column(DateTime, nullable=False, index=True)
    data_fim = Column(DateTime, nullable=False)
    pessoa_removida = Column(Boolean, default=False, nullable=False)
    pessoa_nome_snapshot = Column(String(255))
    created_at = Column(DateTime, default=datetime.utcnow)


class EscalaAeronave(Base):
    """Escala diária de uma aeronave: no máximo uma por (data, aeronave_id)."""

    __tablename__ = "escala_aeronaves"
    __table_args__ = (
        UniqueConstraint("data", "aeronave_id", name="uniq_escala_aeronave_data"),
        CheckConstraint("status IN ('ativa', 'baixada', 'manutencao')", name="ck_escala_aeronave_status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    data = Column(Date, nullable=False, index=True)
    aeronave_id = Column(Integer, ForeignKey("aeronaves.id", ondelete="CASCADE"), nullable=False)
    comandante_id = Column(Integer, ForeignKey("militares.id", ondelete="SET NULL"), nullable=True)
    copiloto_id = Column(Integer, ForeignKey("militares.id", ondelete="SET NULL"), nullable=True)
    tripulante_id = Column(Integer, ForeignKey("militares.id", ondelete="SET NULL"), nullable=True)
    status = Column(String(20), nullable=False, default="ativa")
    em_servico = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class EscalaCodec(Base):
    """
    Plantonista do CODEC: um por (data, turno, ordem) e cada militar no máximo
    uma vez por (data, turno).
    """

    __tablename__ = "escala_codec"
    __table_args__ = (
        UniqueConstraint("data", "turno", "ordem_plantonista", name="uniq_codec_data_turno_ordem"),
        UniqueConstraint("data", "turno", "militar_id", name="uniq_codec_data_turno_militar"),
        CheckConstraint("turno IN ('diurno', 'noturno')", name="ck_codec_turno"),
        CheckConstraint("ordem_plantonista >= 1", name="ck_codec_ordem"),
    )

    id = Column(Integer, primary_key=True, index=True)
    data = Column(Date, nullable=False, index=True)
    turno = Column(String(10), nullable=False)  # diurno 7h-19h, noturno 19h-7h
    ordem_plantonista = Column(Integer, nullable=False, default=1)
    militar_id = Column(Integer, ForeignKey("militares.id", ondelete="SET NULL"), nullable=True)
    militar_removido_nome = Column(String(255))
    created_at = Column(DateTime, default=datetime.utcnow)
