from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

INTRODUCE_GOODS_DOC_TYPE = "LP_INTRODUCE_GOODS"


class DocumentSerializationError(ValueError):
    pass


class Product(BaseModel):
    certificate_document: str | None = None
    certificate_document_date: str | None = None
    certificate_document_number: str | None = None
    owner_inn: str | None = None
    producer_inn: str | None = None
    production_date: str | None = None
    tnved_code: str | None = None
    uit_code: str | None = None
    uitu_code: str | None = None


class CreateGoodsDocumentRequest(BaseModel):
    """
    "Introduce goods into circulation" document for goods produced in RF.

    Field names follow the CRPT wire format; `import_request` is the only
    one that needs an alias.
    """
    model_config = ConfigDict(populate_by_name=True)

    description: str | None = None
    doc_id: str | None = None
    doc_status: str | None = None
    doc_type: str = INTRODUCE_GOODS_DOC_TYPE
    import_request: bool = Field(default=False, alias="importRequest")
    owner_inn: str | None = None
    participant_inn: str | None = None
    producer_inn: str | None = None
    production_date: str | None = None
    production_type: str | None = None
    products: list[Product] = Field(default_factory=list)
    reg_date: str | None = None
    reg_number: str | None = None


def serialize_document(document: CreateGoodsDocumentRequest) -> str:
    """
    Render the document as CRPT wire JSON (aliases applied, empty fields omitted).
    """
    try:
        return document.model_dump_json(by_alias=True, exclude_none=True)
    except ValueError as exc:
        raise DocumentSerializationError(f"Cannot serialize document: {exc}") from exc
