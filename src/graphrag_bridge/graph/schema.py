"""Static description of the code knowledge graph, served to the model verbatim."""

from __future__ import annotations

from typing import Final

__all__ = [
    "SCHEMA_VERSION",
    "QUERY_VECTOR_PLACEHOLDER",
    "EMBEDDING_DIMENSIONS",
    "GRAPH_SCHEMA_DESCRIPTION",
]

SCHEMA_VERSION: Final = "2"

# Token a vector query template must contain where the FLOAT[384] literal goes
QUERY_VECTOR_PLACEHOLDER: Final = "{{QUERY_VECTOR}}"

EMBEDDING_DIMENSIONS: Final = 384

GRAPH_SCHEMA_DESCRIPTION: Final = f"""
KUZU GRAPH DATABASE SCHEMA (version {SCHEMA_VERSION}):

NODE TABLES:
1. CodeNode - All code elements (polymorphic)
   - id: STRING (primary key)
   - label: STRING (one of: File, Folder, Function, Class, Method, Interface)
   - name: STRING (element name)
   - filePath: STRING (path in project)
   - startLine: INT64 (line number where element starts)
   - endLine: INT64 (line number where element ends)
   - content: STRING (source code snippet)

2. CodeEmbedding - Vector embeddings (separate table to keep CodeNode small)
   - nodeId: STRING (primary key, references CodeNode.id)
   - embedding: FLOAT[{EMBEDDING_DIMENSIONS}] (semantic vector)

RELATIONSHIP TABLE:
- CodeRelation (FROM CodeNode TO CodeNode)
  - type: STRING (one of: CALLS, IMPORTS, CONTAINS, DEFINES)

QUERY PATTERNS:

1. Basic node queries:
   MATCH (n:CodeNode {{label: 'Function'}}) RETURN n.name, n.filePath LIMIT 10

2. Relationship traversal:
   MATCH (f:CodeNode {{label: 'File'}})-[r:CodeRelation {{type: 'DEFINES'}}]->(fn:CodeNode {{label: 'Function'}})
   RETURN f.name AS file, fn.name AS function

3. Find callers of a function:
   MATCH (caller:CodeNode)-[r:CodeRelation {{type: 'CALLS'}}]->(fn:CodeNode {{name: 'parseConfig'}})
   RETURN caller.name, caller.label, caller.filePath

4. Import chain analysis:
   MATCH (f:CodeNode {{name: 'index.ts'}})-[r:CodeRelation {{type: 'IMPORTS'}}]->(imported:CodeNode)
   RETURN imported.name AS imports

5. Vector search + graph traversal in ONE query (vector_graph_query tool only).
   Put {QUERY_VECTOR_PLACEHOLDER} where the query vector belongs; it is replaced
   with CAST([...] AS FLOAT[{EMBEDDING_DIMENSIONS}]) before execution.
   WITH is required after YIELD before WHERE:
   CALL QUERY_VECTOR_INDEX('CodeEmbedding', 'code_embedding_idx', {QUERY_VECTOR_PLACEHOLDER}, 10)
   YIELD node AS emb, distance
   WITH emb, distance
   WHERE distance < 0.5
   MATCH (match:CodeNode {{id: emb.nodeId}})
   MATCH (match)-[r:CodeRelation*1..2]-(ctx:CodeNode)
   RETURN match.name, match.label, match.filePath, distance, collect(DISTINCT ctx.name) AS context
   ORDER BY distance

NOTES:
- Filter by label in WHERE clauses when possible
- Use LIMIT to avoid returning too many results
- The vector index is on CodeEmbedding, not CodeNode; JOIN back via emb.nodeId
- distance is cosine distance (0 = identical, 1 = orthogonal)
"""
