"""
AI flows for Inkwell.

Each flow is a typed request/response contract:
- correctGrammar: fix grammar and spelling in a document
- rewriteDocument: rewrite text following free-form instructions
- chatWithDocument: conversational editing with a reply and a full rewrite
- manipulateData: apply a natural-language instruction to CSV data
- createFormula: turn a description into a spreadsheet formula

The input is validated, interpolated into a prompt, sent to the chat
completions API in JSON mode, and the reply is validated against the
output schema. Failures surface as FlowError; there are no retries.
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Type, Union

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .config import OPENAI_API_KEY, OPENAI_MODEL
from .errors import FlowError

logger = logging.getLogger(__name__)


class FlowModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============== Schemas ==============

class CorrectGrammarInput(FlowModel):
    text: str = Field(description="The text to correct.")


class CorrectGrammarOutput(FlowModel):
    corrected_text: str = Field(description="The text with grammar and spelling corrected.")


class RewriteDocumentInput(FlowModel):
    selected_text: str = Field(description="The text selected by the user to be rewritten.")
    instructions: str = Field(description="Natural language instructions for rewriting the selected text.")


class RewriteDocumentOutput(FlowModel):
    rewritten_text: str = Field(description="The rewritten text based on the instructions.")


class ChatWithDocumentInput(FlowModel):
    document: str = Field(description="The current content of the document.")
    instruction: str = Field(description="The user's instruction for what to change.")
    chat_history: Optional[str] = Field(default=None, description="The history of the conversation so far.")


class ChatWithDocumentOutput(FlowModel):
    reply: str = Field(description="A short conversational reply about the changes made.")
    rewritten_document: str = Field(description="The full, updated document content.")


class ManipulateDataInput(FlowModel):
    spreadsheet_data: str = Field(description="The data from the spreadsheet as a CSV string.")
    selected_range: str = Field(description="The selected range of cells (e.g., A1:C5).")
    instruction: str = Field(description="The natural language instruction for data manipulation.")


class ManipulateDataOutput(FlowModel):
    manipulated_data: str = Field(description="The manipulated data in CSV format.")


class CreateFormulaInput(FlowModel):
    description: str = Field(description="A natural language description of the desired calculation.")
    column_names: List[str] = Field(description="The names of the columns available in the spreadsheet.")


class CreateFormulaOutput(FlowModel):
    formula: str = Field(description="The generated spreadsheet formula, without a leading equals sign.")

    @field_validator("formula")
    @classmethod
    def _strip_equals(cls, value: str) -> str:
        return value.strip().lstrip("=").strip()


# ============== Prompts ==============

CORRECT_GRAMMAR_PROMPT = """Correct the grammar, spelling and punctuation of the text below.
Keep the meaning, tone and formatting (including markdown) unchanged.
Do not add commentary.

Text:
{text}"""

REWRITE_DOCUMENT_PROMPT = """Rewrite the selected text according to the instructions provided.
Return only the rewritten text.

Selected Text:
{selected_text}

Instructions: {instructions}"""

CHAT_WITH_DOCUMENT_PROMPT = """The user is editing a document through conversation.

Your tasks are:
1. Rewrite the document based on the user's latest instruction, taking into account the conversation so far.
2. Give a short, conversational reply explaining what you did. For example, if the user says "make it shorter", you could reply "I've condensed it for you."

Chat History:
{chat_history}

Current Document:
{document}

User Instruction:
"{instruction}"

Now, generate the reply and the rewritten document."""

MANIPULATE_DATA_PROMPT = """Perform the data manipulation task described in the instruction on the selected range of the spreadsheet data.

Spreadsheet Data (CSV):
{spreadsheet_data}

Selected Range: {selected_range}

Instruction: {instruction}

Return the whole spreadsheet, manipulated, as valid CSV with a header row."""

CREATE_FORMULA_PROMPT = """Generate a spreadsheet formula for the user's description.

Available column names: {column_names}

Description: {description}

The formula must be valid in common spreadsheet software like Google Sheets or Microsoft Excel.
Use the column names directly; do not assume column order.
If no columns are mentioned, use columns A, B, C, etc.
The formula must NOT include a leading equals sign (=)."""


class FlowKind(str, Enum):
    """The AI flows the workspace can invoke"""
    CORRECT_GRAMMAR = "correctGrammar"
    REWRITE_DOCUMENT = "rewriteDocument"
    CHAT_WITH_DOCUMENT = "chatWithDocument"
    MANIPULATE_DATA = "manipulateData"
    CREATE_FORMULA = "createFormula"


@dataclass
class FlowSpec:
    """How to call one flow"""
    kind: FlowKind
    role: str
    template: str
    input_model: Type[FlowModel]
    output_model: Type[FlowModel]

    def system_prompt(self) -> str:
        schema = json.dumps(self.output_model.model_json_schema(by_alias=True), indent=2)
        return (
            f"{self.role}\n\n"
            "Respond with a single JSON object that matches this JSON schema:\n"
            f"{schema}"
        )

    def render(self, request: FlowModel) -> str:
        values = request.model_dump()
        for key, value in values.items():
            if value is None:
                values[key] = "(none)"
            elif isinstance(value, list):
                values[key] = ", ".join(str(v) for v in value) or "(none)"
        return self.template.format(**values)


FLOWS: Dict[FlowKind, FlowSpec] = {
    FlowKind.CORRECT_GRAMMAR: FlowSpec(
        kind=FlowKind.CORRECT_GRAMMAR,
        role="You are a meticulous copy editor.",
        template=CORRECT_GRAMMAR_PROMPT,
        input_model=CorrectGrammarInput,
        output_model=CorrectGrammarOutput,
    ),
    FlowKind.REWRITE_DOCUMENT: FlowSpec(
        kind=FlowKind.REWRITE_DOCUMENT,
        role="You are an AI assistant specialized in rewriting text based on user instructions.",
        template=REWRITE_DOCUMENT_PROMPT,
        input_model=RewriteDocumentInput,
        output_model=RewriteDocumentOutput,
    ),
    FlowKind.CHAT_WITH_DOCUMENT: FlowSpec(
        kind=FlowKind.CHAT_WITH_DOCUMENT,
        role="You are an AI assistant that helps users edit a document through conversation.",
        template=CHAT_WITH_DOCUMENT_PROMPT,
        input_model=ChatWithDocumentInput,
        output_model=ChatWithDocumentOutput,
    ),
    FlowKind.MANIPULATE_DATA: FlowSpec(
        kind=FlowKind.MANIPULATE_DATA,
        role="You are an AI assistant specializing in data manipulation within spreadsheets.",
        template=MANIPULATE_DATA_PROMPT,
        input_model=ManipulateDataInput,
        output_model=ManipulateDataOutput,
    ),
    FlowKind.CREATE_FORMULA: FlowSpec(
        kind=FlowKind.CREATE_FORMULA,
        role="You are a spreadsheet expert.",
        template=CREATE_FORMULA_PROMPT,
        input_model=CreateFormulaInput,
        output_model=CreateFormulaOutput,
    ),
}


def _extract_json(text: str) -> str:
    """Models sometimes wrap JSON in a markdown fence even in JSON mode."""
    text = text.strip()
    if "```" in text:
        match = re.search(r'```(?:json)?\s*([\s\S]*?)```', text)
        if match:
            text = match.group(1)
    return text


class FlowClient:
    """Runs AI flows against an OpenAI-compatible chat completions API"""

    def __init__(self, client: Optional[Any] = None, model: str = OPENAI_MODEL):
        self._client = client
        self.model = model

    @property
    def client(self):
        if self._client is None:
            self._client = OpenAI(api_key=OPENAI_API_KEY or None)
        return self._client

    def invoke(self, kind: Union[FlowKind, str], payload: Union[FlowModel, Dict[str, Any]]) -> FlowModel:
        """
        Run one flow.

        payload may be the flow's input model or a dict using either wire
        (camelCase) or Python (snake_case) field names.
        """
        try:
            spec = FLOWS[FlowKind(kind)]
        except ValueError as e:
            raise FlowError(str(kind), "unknown flow") from e
        name = spec.kind.value

        try:
            if isinstance(payload, spec.input_model):
                request = payload
            else:
                request = spec.input_model.model_validate(payload)
        except ValidationError as e:
            raise FlowError(name, f"invalid input ({e.error_count()} errors)") from e

        messages = [
            {"role": "system", "content": spec.system_prompt()},
            {"role": "user", "content": spec.render(request)},
        ]

        logger.info(f"Running {name} with {self.model}")
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            logger.error(f"{name} request failed: {e}")
            raise FlowError(name, "the model request failed") from e

        text = response.choices[0].message.content if response.choices else None
        if not text:
            raise FlowError(name, "the model returned an empty response")

        try:
            return spec.output_model.model_validate_json(_extract_json(text))
        except ValidationError as e:
            logger.error(f"{name} returned an unexpected response: {e}")
            raise FlowError(name, "the model response did not match the schema") from e

    # Typed shortcuts
    def correct_grammar(self, text: str) -> str:
        result = self.invoke(FlowKind.CORRECT_GRAMMAR, CorrectGrammarInput(text=text))
        return result.corrected_text

    def rewrite_document(self, selected_text: str, instructions: str) -> str:
        result = self.invoke(
            FlowKind.REWRITE_DOCUMENT,
            RewriteDocumentInput(selected_text=selected_text, instructions=instructions),
        )
        return result.rewritten_text

    def chat_with_document(
        self,
        document: str,
        instruction: str,
        chat_history: Optional[str] = None,
    ) -> ChatWithDocumentOutput:
        return self.invoke(
            FlowKind.CHAT_WITH_DOCUMENT,
            ChatWithDocumentInput(document=document, instruction=instruction, chat_history=chat_history),
        )

    def manipulate_data(self, spreadsheet_data: str, selected_range: str, instruction: str) -> str:
        result = self.invoke(
            FlowKind.MANIPULATE_DATA,
            ManipulateDataInput(
                spreadsheet_data=spreadsheet_data,
                selected_range=selected_range,
                instruction=instruction,
            ),
        )
        return result.manipulated_data

    def create_formula(self, description: str, column_names: List[str]) -> str:
        result = self.invoke(
            FlowKind.CREATE_FORMULA,
            CreateFormulaInput(description=description, column_names=column_names),
        )
        return result.formula
