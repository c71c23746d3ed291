from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from eventmap.modules.tree.model import NodeType


class NodeSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: NodeType
    text: str | None = None
    choiceLabel: str | None = None
    requirements: list[str] = Field(default_factory=list)
    effects: list[str] = Field(default_factory=list)
    numContinues: int | None = Field(default=None, ge=0)
    ref: int | None = None
    refChildren: list[int] | None = None
    refTarget: int | None = None
    refSource: int | None = None
    refCreate: str | None = Field(default=None, min_length=1)
    refChildrenFromFirstSibling: bool = False
    children: list[NodeSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_ref_fields(self):
        linked = [value for value in (self.ref, self.refSource, self.refCreate) if value is not None]
        if len(linked) > 1:
            raise ValueError("use at most one of ref, refSource and refCreate")
        if linked and self.children:
            raise ValueError("a node with a ref cannot declare children")
        self.requirements = [item for item in self.requirements if item]
        self.effects = [item for item in self.effects if item]
        return self


class Find(BaseModel):
    model_config = ConfigDict(extra="forbid")

    textStartsWith: str | None = Field(default=None, min_length=1)
    textOrLabel: str | None = Field(default=None, min_length=1)
    effect: str | None = Field(default=None, min_length=1)
    requirement: str | None = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def validate_selector(self):
        if not any([self.textStartsWith, self.textOrLabel, self.effect, self.requirement]):
            raise ValueError("find needs textStartsWith, textOrLabel, effect or requirement")
        return self

    def describe(self) -> str:
        parts = [
            f"{key}={value!r}"
            for key, value in self.model_dump(exclude_none=True).items()
        ]
        return " + ".join(parts)


class ModifyNode(BaseModel):
    model_config = ConfigDict(extra="forbid")

    removeRef: bool = False
    removeText: bool = False
    removeNumContinues: bool = False
    removeChildren: bool = False
    type: NodeType | None = None
    refCreate: str | None = Field(default=None, min_length=1)
    refCreateStartsWith: str | None = Field(default=None, min_length=1)


class Alteration(BaseModel):
    model_config = ConfigDict(extra="forbid")

    find: Find
    addRequirements: list[str] | None = None
    addChild: NodeSpec | None = None
    replaceNode: NodeSpec | None = None
    replaceChildren: list[NodeSpec] | None = None
    modifyNode: ModifyNode | None = None
    removeNode: bool = False

    @model_validator(mode="after")
    def validate_action(self):
        actions = [
            self.addRequirements,
            self.addChild,
            self.replaceNode,
            self.replaceChildren,
            self.modifyNode,
        ]
        if not self.removeNode and all(action is None for action in actions):
            raise ValueError("alteration declares no action")
        return self


class UnitAlterations(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    alterations: list[Alteration] = Field(default_factory=list)
