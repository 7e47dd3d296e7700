from enum import Enum


class InteractionModel(str, Enum):
    COMPENSATORY = "compensatory"
    CONJUNCTIVE = "conjunctive"
    DISJUNCTIVE = "disjunctive"


class CognitiveProcess(str, Enum):
    RECOGNITION = "recognition"
    RECALL = "recall"
    TRANSFORMATION = "transformation"
    PRODUCTION = "production"
