# model/client.py
from enum import Enum
from pydantic import BaseModel, Field


class DocumentSlot(str, Enum):
    coverage_proof = "coverage_proof"
    sum_insured_proof = "sum_insured_proof"
    policy_fee_invoice = "policy_fee_invoice"
    vat_debit_note = "vat_debit_note"
    payment_receipt = "payment_receipt"
    nic_proof = "nic_proof"
    dob_proof = "dob_proof"
    business_registration_proof = "business_registration_proof"
    svat_proof = "svat_proof"
    vat_proof = "vat_proof"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES: dict[DocumentSlot, str] = {
    DocumentSlot.coverage_proof: "Coverage Proof",
    DocumentSlot.sum_insured_proof: "Sum Insured Proof",
    DocumentSlot.policy_fee_invoice: "Policy Fee Invoice",
    DocumentSlot.vat_debit_note: "VAT Debit Note",
    DocumentSlot.payment_receipt: "Payment Receipt",
    DocumentSlot.nic_proof: "NIC Proof",
    DocumentSlot.dob_proof: "DOB Proof",
    DocumentSlot.business_registration_proof: "Business Registration",
    DocumentSlot.svat_proof: "SVAT Proof",
    DocumentSlot.vat_proof: "VAT Proof",
}


class DocumentReference(BaseModel):
    storedPath: str = Field(min_length=1)


# Partial slot update: a slot mapped to None clears the reference.
SlotMap = dict[DocumentSlot, DocumentReference | None]


class ClientRecord(BaseModel):
    id: str
    name: str | None = None
    documents: SlotMap = Field(default_factory=dict)

    def reference(self, slot: DocumentSlot) -> DocumentReference | None:
        return self.documents.get(slot)

    def filled_slots(self) -> list[tuple[DocumentSlot, DocumentReference]]:
        """Non-null references in slot declaration order."""
        return [
            (slot, ref)
            for slot in DocumentSlot
            if (ref := self.documents.get(slot)) is not None
        ]
