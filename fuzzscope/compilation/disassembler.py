"""Minimal EVM disassembly used to align source maps with program counters.

Source map elements are indexed by instruction, coverage is recorded by
program counter; the two are related by skipping PUSH immediates.
"""

from __future__ import annotations

from dataclasses import dataclass

PUSH1 = 0x60
PUSH32 = 0x7F


@dataclass(frozen=True)
class Instruction:
    """A single disassembled EVM instruction."""
    offset: int
    opcode: int
    size: int = 1

    @property
    def is_push(self) -> bool:
        return PUSH1 <= self.opcode <= PUSH32 or self.opcode == 0x5F


class EVMDisassembler:
    """Disassembles EVM bytecode into instructions."""

    def disassemble(self, bytecode: bytes) -> list[Instruction]:
        instructions: list[Instruction] = []
        i = 0

        while i < len(bytecode):
            opcode = bytecode[i]
            if PUSH1 <= opcode <= PUSH32:
                # immediates may run past the end of truncated code
                size = 1 + opcode - 0x5F
            else:
                size = 1
            instructions.append(Instruction(offset=i, opcode=opcode, size=size))
            i += size

        return instructions


def instruction_offsets(bytecode: bytes) -> list[int]:
    """Program counter of each instruction, indexed by instruction number."""
    return [inst.offset for inst in EVMDisassembler().disassemble(bytecode)]
