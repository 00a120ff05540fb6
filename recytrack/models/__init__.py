# Import every model so Base.metadata knows all tables
from recytrack.models.container import Container, ContainerStatus, ContainerType
from recytrack.models.material import (
    MaterialInput, MaterialInputStatus,
    ProcessingStep, ProcessingStepStatus, StepType,
)
from recytrack.models.sample import Sample, SampleResult, SampleStatus
from recytrack.models.output_material import OutputMaterial, OutputMaterialStatus, OutputType
from recytrack.models.order import Order, OrderStatus
from recytrack.models.allocation import BatchAllocation
from recytrack.models.delivery_note import DeliveryNote, DeliveryNoteType
from recytrack.models.material_flow import MaterialFlowEvent, MaterialFlowEventType
from recytrack.models.id_sequence import IdSequence

__all__ = [
    "Container", "ContainerStatus", "ContainerType",
    "MaterialInput", "MaterialInputStatus",
    "ProcessingStep", "ProcessingStepStatus", "StepType",
    "Sample", "SampleResult", "SampleStatus",
    "OutputMaterial", "OutputMaterialStatus", "OutputType",
    "Order", "OrderStatus",
    "BatchAllocation",
    "DeliveryNote", "DeliveryNoteType",
    "MaterialFlowEvent", "MaterialFlowEventType",
    "IdSequence",
]
