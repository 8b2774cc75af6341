"""
processor.py - PMML Field-Mapping Processor

One inbound message in, one outbound message out.

Pipeline:
    1. Decode payload (native map or JSON text)
    2. Build model inputs (mapping table or flattened payload)
    3. Evaluate the PMML model
    4. Build outbound payload (mapping table or merged outputs)
    5. Encode in the inbound representation

Any failure in steps 1-4 is raised; nothing is emitted for that message.
"""

import copy
import logging

from .codec import Message, decode, encode
from .config import load_mapping_tables
from .errors import FieldNotFoundError
from .mapping import HEADERS_SCOPE, MappingTable, assign_path, flatten_payload, resolve_path

logger = logging.getLogger(__name__)


class PmmlProcessor:
    """
    Maps message fields to model inputs and model outputs back to the payload.

    Attributes:
        evaluator: object with evaluate(dict) -> dict
        inputs: MappingTable for model inputs (empty = identity)
        outputs: MappingTable for model outputs (empty = identity)
    """

    def __init__(self, evaluator, inputs=None, outputs=None):
        self.evaluator = evaluator
        self.inputs = inputs if inputs is not None else MappingTable()
        self.outputs = outputs if outputs is not None else MappingTable()

        logger.info(
            f"PmmlProcessor initialized (inputs: {'identity' if self.inputs.is_identity else len(self.inputs)}, "
            f"outputs: {'identity' if self.outputs.is_identity else len(self.outputs)})"
        )

    @classmethod
    def from_config(cls, evaluator, config=None):
        """Build a processor with mapping tables parsed from config."""
        inputs, outputs = load_mapping_tables(config)
        return cls(evaluator, inputs, outputs)

    def build_inputs(self, payload, headers=None):
        """
        Build the model input dict.

        Args:
            payload: decoded payload tree
            headers: message headers (for headers.* sources)

        Returns:
            dict: model input name -> value

        Raises:
            FieldNotFoundError: a configured source path is missing
        """
        if self.inputs.is_identity:
            return flatten_payload(payload)

        request = {}
        for entry in self.inputs:
            if entry.scope == HEADERS_SCOPE:
                headers = headers or {}
                if entry.source_path not in headers:
                    raise FieldNotFoundError(f"headers.{entry.source_path}", "missing header")
                request[entry.target_name] = headers[entry.source_path]
            else:
                request[entry.target_name] = resolve_path(payload, entry.source_path)
        return request

    def build_outputs(self, payload, result):
        """
        Outbound payload: copy of inbound payload with model outputs written in.

        Identity mode merges every output at top level, overwriting
        existing keys of the same name.

        Raises:
            FieldNotFoundError: a mapped model output was not produced
        """
        outbound = copy.deepcopy(payload)

        if self.outputs.is_identity:
            outbound.update(result)
            return outbound

        for entry in self.outputs:
            if entry.source_path not in result:
                raise FieldNotFoundError(entry.source_path, "model did not produce this output")
            assign_path(outbound, entry.target_name, result[entry.source_path])
        return outbound

    def process(self, message: Message) -> Message:
        """
        Process a single message.

        Args:
            message: inbound Message

        Returns:
            Message: outbound message in the inbound representation
        """
        payload, representation = decode(message)
        request = self.build_inputs(payload, message.headers)
        result = self.evaluator.evaluate(request)
        outbound = self.build_outputs(payload, result)
        return encode(outbound, representation, message.headers)
